import logging
import os
from contextlib import asynccontextmanager

import boto3
import firebase_admin
from botocore.config import Config
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from firebase_admin import credentials
from starlette.middleware.cors import CORSMiddleware

from context import RequestContextMiddleware, current_request_id
from routes.auth import router as auth_router
from routes.media import router as media_router
from routes.posts import router as posts_router
from services.accounts import AccountStore
from services.errors import SocialFeedError, UnexpectedError
from services.feed import FeedAssembler
from services.firestore import FirestoreDB
from services.posts import PostRepository
from services.s3 import S3Service

load_dotenv()

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"),
                    format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("socialfeed")

AWS_REGION = os.environ.get("AWS_REGION", "us-east-2")
BUCKET_NAME = os.environ.get("S3_BUCKET_NAME")
FRONTEND_URL = os.environ.get("FRONTEND_URL", "http://localhost:3000")


def init_services(app: FastAPI, firestore: FirestoreDB, s3: S3Service):
    """Wire the services onto app state so the dependencies can find them"""
    accounts = AccountStore(firestore)
    app.state.firestore = firestore
    app.state.account_store = accounts
    app.state.post_repository = PostRepository(firestore, accounts)
    app.state.feed = FeedAssembler(firestore, accounts)
    app.state.s3_service = s3


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize Firebase Admin SDK
    cred = credentials.Certificate(os.getenv("FIREBASE_CREDENTIALS", "./firebase.json"))
    firebase_app = firebase_admin.initialize_app(cred)

    s3_client = boto3.client(
        's3',
        aws_access_key_id=os.environ.get("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.environ.get("AWS_SECRET_ACCESS_KEY"),
        region_name=AWS_REGION,
        config=Config(signature_version="s3v4")
    )

    firestore = FirestoreDB.from_app(firebase_app)
    init_services(app, firestore, S3Service(BUCKET_NAME, s3_client, AWS_REGION))
    logger.info("Services initialized")

    yield
    # Cleanup resources
    firestore.close()
    firebase_admin.delete_app(firebase_app)


app = FastAPI(lifespan=lifespan)

# middleware to set request context
app.add_middleware(RequestContextMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["set-cookie", "x-request-id"]
)


@app.exception_handler(SocialFeedError)
async def service_error_handler(request: Request, exc: SocialFeedError):
    if isinstance(exc, UnexpectedError):
        # Log the cause, but only send the generic message back
        logger.error("[%s] %s %s failed: %s", current_request_id(), request.method, request.url.path, exc)
        return JSONResponse(status_code=exc.status_code, content=UnexpectedError().to_dict())
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Invalid request",
            "details": {"errors": jsonable_encoder(exc.errors())},
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("[%s] Unhandled error on %s %s", current_request_id(), request.method, request.url.path)
    return JSONResponse(status_code=500, content=UnexpectedError().to_dict())


# Include routers
app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(posts_router, prefix="/api/posts", tags=["posts"])
app.include_router(media_router, prefix="/api/media", tags=["media"])
