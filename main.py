import logging
from contextlib import asynccontextmanager

import firebase_admin
from fastapi import FastAPI
from firebase_admin import credentials
from starlette.middleware.cors import CORSMiddleware

import config
from routes.follows import router as follows_router
from routes.posts import router as posts_router
from routes.user_search import router as user_search_router
from routes.users import router as users_router
from services.firestore import FirestoreDB
from services.posts import PostService
from services.reconciler import CounterReconciler
from services.toggles import ToggleEngine
from services.users import UsersService

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialize Firebase Admin SDK
    cred = credentials.Certificate(config.FIREBASE_CREDENTIALS)
    firebase_app = firebase_admin.initialize_app(cred)

    # Initialize dependencies
    firestore = FirestoreDB(firebase_app)
    reconciler = CounterReconciler(firestore)
    toggle_engine = ToggleEngine(firestore)

    app.state.toggle_engine = toggle_engine
    app.state.post_service = PostService(firestore, reconciler, toggle_engine)
    app.state.users_service = UsersService(firestore, reconciler)

    yield
    # Cleanup resources
    firebase_admin.delete_app(firebase_app)


app = FastAPI(lifespan=lifespan)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(posts_router, prefix="/posts", tags=["posts"])

# search must be registered before /users/{uid}
app.include_router(user_search_router, prefix="/users")
app.include_router(follows_router, prefix="/users", tags=["follows"])
app.include_router(users_router, prefix="/users", tags=["users"])
