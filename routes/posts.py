from typing import List

from fastapi import APIRouter, status

from dependencies import Posts, Feed, CurrentUser
from models.post import Post, PostCreate, CommentRequest

router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
def create_post(posts: Posts, post_data: PostCreate, current_user: CurrentUser) -> Post:
    """Create a new post"""
    return posts.create(current_user.user_id, post_data.text, post_data.image)


@router.get("")
def get_posts(feed: Feed) -> List[Post]:
    """Get all posts, newest first"""
    return feed.list_all()


@router.get("/me")
def get_my_posts(feed: Feed, current_user: CurrentUser) -> List[Post]:
    """Get the current user's posts"""
    return feed.list_mine(current_user.user_id)


@router.get("/user/{user_id}")
def get_user_posts(feed: Feed, user_id: str) -> List[Post]:
    """Get posts by user ID"""
    return feed.list_by_account(user_id)


@router.get("/{post_id}")
def get_post(posts: Posts, post_id: str) -> Post:
    return posts.get(post_id)


@router.post("/{post_id}/like")
def toggle_like(posts: Posts, post_id: str, current_user: CurrentUser) -> Post:
    """Toggle like status for a post"""
    return posts.toggle_like(post_id, current_user.user_id)


@router.post("/{post_id}/comment")
def add_comment(
        posts: Posts,
        post_id: str,
        comment: CommentRequest,
        current_user: CurrentUser
) -> Post:
    """Add a comment to a post"""
    return posts.add_comment(post_id, current_user.user_id, comment.text)
