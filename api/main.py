from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from affiliates import router as affiliates_router
from auth import router as auth_router
from billing import router as billing_router
from cache import router as cache_router
from cache.query import bind_invalidations, get_query_client
from cache.tiered import get_cache
from community import router as community_router
from content import router as content_router
from core import config, db
from core.errors import register_exception_handlers
from core.jobs import PeriodicJob
from core.logging_config import configure_logging
from digest import router as digest_router
from digest import service as digest_service
from geocoding import router as geocoding_router
from mailer import drip
from mailer import router as mailer_router
from meetings import router as meetings_router
from membership import router as membership_router
from notifications import router as notifications_router
from realtime import router as realtime_router
from realtime.hub import get_hub

configure_logging()


async def _collect_garbage() -> dict:
    return {
        "local_expired": get_cache().cleanup_local(),
        "queries_collected": get_query_client().collect_garbage(),
        "typing_expired": get_hub().sweep_typing(),
    }


def _scheduled_jobs() -> list[PeriodicJob]:
    jobs = [PeriodicJob("cache_gc", _collect_garbage, interval_s=config.env_float("CACHE_GC_INTERVAL_S", 60.0))]
    if not config.env_bool("ENABLE_SCHEDULER"):
        return jobs
    return jobs + [
        PeriodicJob("drip", drip.process_due, interval_s=config.env_float("DRIP_INTERVAL_S", 300.0)),
        PeriodicJob(
            "digest",
            digest_service.generate_daily_digest,
            interval_s=config.env_float("DIGEST_INTERVAL_S", 3600.0),
        ),
    ]


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Initialize the DB pool once per process.
    await db.init_pool()
    unbind = bind_invalidations(get_hub(), get_query_client(), {digest_service.DIGEST_CHANNEL: [("digest",)]})
    jobs = _scheduled_jobs()
    for job in jobs:
        job.start()
    try:
        yield
    finally:
        for job in jobs:
            await job.stop()
        unbind()
        await db.close_pool()


app = FastAPI(lifespan=lifespan)
register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router.router, tags=["auth"])
app.include_router(membership_router.router, tags=["membership"])
app.include_router(cache_router.router, tags=["cache"])
app.include_router(realtime_router.router, tags=["realtime"])
app.include_router(billing_router.router, tags=["billing"])
app.include_router(mailer_router.router, tags=["emails"])
app.include_router(notifications_router.router, tags=["notifications"])
app.include_router(meetings_router.router, tags=["meetings"])
app.include_router(geocoding_router.router, tags=["geocoding"])
app.include_router(content_router.router, tags=["content"])
app.include_router(digest_router.router, tags=["digests"])
app.include_router(affiliates_router.router, tags=["affiliates"])
app.include_router(community_router.router, tags=["community"])


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/")
def root() -> dict:
    return {"message": "investor-hub api"}
