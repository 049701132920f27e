import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import aio_pika
from fastapi import FastAPI, HTTPException, Query, Response
from fastapi.middleware.cors import CORSMiddleware

from config import CACHE_SWEEP_INTERVAL, LOG_LEVEL, PREVIEW_CACHE_TTL, RABBITMQ_URL
from models.preview import EmbedResponse
from services.cache import InMemoryPreviewCache
from services.dispatcher import resolve_preview

logging.basicConfig(level=LOG_LEVEL.upper())
logger = logging.getLogger("link-preview-service")

PREVIEW_JOBS_QUEUE = "bookmark_preview_jobs"
PREVIEW_RESULTS_QUEUE = "bookmark_preview_results"
EMBED_CACHE_CONTROL = f"public, s-maxage={PREVIEW_CACHE_TTL}, stale-while-revalidate={PREVIEW_CACHE_TTL // 2}"

preview_cache = InMemoryPreviewCache()


def handle_preview_job(body: bytes) -> Optional[dict]:
    """
    Resolve the preview requested by a job message and build the result
    message. Returns None for jobs that cannot be understood.
    """
    try:
        data = json.loads(body)
        bookmark_id = data["bookmarkId"]
        url = data["url"]
    except (ValueError, TypeError, KeyError) as exc:
        logger.warning(f"Discarding malformed preview job: {exc}")
        return None

    preview = resolve_preview(url, cache=preview_cache)
    return {
        "bookmarkId": bookmark_id,
        **EmbedResponse.from_result(preview).model_dump(),
        "fetchedAt": datetime.now(timezone.utc).isoformat(),
    }


async def consume_preview_jobs():
    retry_interval = 2.0
    while True:
        try:
            connection = await aio_pika.connect_robust(RABBITMQ_URL)
            async with connection:
                channel = await connection.channel()
                jobs_queue = await channel.declare_queue(PREVIEW_JOBS_QUEUE, durable=True)
                await channel.declare_queue(PREVIEW_RESULTS_QUEUE, durable=True)

                logger.info("Connected to RabbitMQ, consuming preview jobs")

                async with jobs_queue.iterator() as queue_iter:
                    async for message in queue_iter:
                        async with message.process():
                            # the pipeline uses requests (blocking), run in thread pool
                            loop = asyncio.get_running_loop()
                            result = await loop.run_in_executor(None, handle_preview_job, message.body)
                            if result is None:
                                continue

                            await channel.default_exchange.publish(
                                aio_pika.Message(
                                    body=json.dumps(result).encode(),
                                    delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
                                ),
                                routing_key=PREVIEW_RESULTS_QUEUE,
                            )
                            logger.info("Preview result published", extra={"bookmarkId": result["bookmarkId"]})
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.warning(f"RabbitMQ consumer error, retrying in {retry_interval}s: {exc}")
            await asyncio.sleep(retry_interval)


async def sweep_preview_cache():
    while True:
        await asyncio.sleep(CACHE_SWEEP_INTERVAL)
        preview_cache.cleanup()


@asynccontextmanager
async def lifespan(app: FastAPI):
    tasks = [
        asyncio.create_task(consume_preview_jobs()),
        asyncio.create_task(sweep_preview_cache()),
    ]
    yield
    for task in tasks:
        task.cancel()
    for task in tasks:
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="Link Preview Service", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


@app.get("/api/bookmarks/embed", response_model=EmbedResponse)
def get_embed(
    response: Response,
    url: Optional[str] = Query(None, description="The URL to build a bookmark preview for"),
):
    if not url or not url.strip():
        raise HTTPException(status_code=400, detail="URL is required")

    preview = resolve_preview(url, cache=preview_cache)
    response.headers["Cache-Control"] = EMBED_CACHE_CONTROL
    return EmbedResponse.from_result(preview)


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/ready")
def ready():
    return {"status": "ready"}
