import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from postfeed.cache import cache
from postfeed.config import settings
from postfeed.database import Database
from postfeed.errors import PostFeedError, StoreError
from postfeed.logging_config import setup_logging
from postfeed.middleware import TimingMiddleware
from postfeed.routers import metrics, posts, users

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging(settings.LOG_LEVEL)
    database = Database(settings.DATABASE_URL, echo=settings.DEBUG, pool_pre_ping=True)
    await database.connect()
    app.state.database = database
    await cache.connect()
    yield
    # Shutdown
    await cache.disconnect()
    await database.disconnect()

app = FastAPI(
    title="Post Feed API",
    description="Posts with likes and comments over a versioned document store",
    version="1.0.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(PostFeedError)
async def post_feed_error_handler(request: Request, exc: PostFeedError):
    if isinstance(exc, StoreError):
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"msg": exc.message, "retryable": exc.retryable},
    )

# Routers
app.include_router(posts.router)
app.include_router(users.router)
app.include_router(metrics.router)

@app.get("/health")
async def health():
    return {"status": "healthy", "version": "1.0.0"}
