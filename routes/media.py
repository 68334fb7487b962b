from fastapi import APIRouter, UploadFile, File, status

from dependencies import S3, CurrentUser

router = APIRouter()


@router.post("/images", status_code=status.HTTP_201_CREATED)
async def upload_image(
        s3: S3,
        current_user: CurrentUser,
        file: UploadFile = File(...),
):
    """
    Upload a post image and return the URL to send as a post's `image`
    """
    url = await s3.upload_image(file, current_user.user_id)
    return {"url": url}
