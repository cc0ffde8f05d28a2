"""
Companion Orchestrator FastAPI Application

HTTP surface of the companion backend:
    POST /chat            quota gate → reply generation → per-segment audio + lip-sync
    POST /verify-payment  redeem a payment code for a paid plan
    GET  /audio/...       replay a retained synthesized segment
    GET  /health          liveness probe

Background sweeps (plan expiration, artifact purge) run for the lifetime
of the application.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, PlainTextResponse

from artifacts.artifact_store import ArtifactStore
from billing.entitlement_ledger import EntitlementLedger
from billing.plans import UPGRADE_PLANS
from orchestrator.config import CompanionConfig
from orchestrator.maintenance import PeriodicTask
from orchestrator.models import ChatRequest, VerifyPaymentRequest
from orchestrator.pipeline import (
    ChatOutcome,
    MessagePipeline,
    PipelineConfigurationError,
    PipelineError,
)
from orchestrator.reply_generator import GeminiReplyGenerator
from shared.record_store import RecordStore
from shared.redis_client import RedisClients
from shared.structured_logger import StructuredLogger
from tts.lipsync import RhubarbLipSync
from tts.tts_synthesizer import SpeechSynthesizer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global state, set in lifespan
config: Optional[CompanionConfig] = None
redis_clients: Optional[RedisClients] = None
ledger: Optional[EntitlementLedger] = None
artifact_store: Optional[ArtifactStore] = None
pipeline: Optional[MessagePipeline] = None
plan_expiry_task: Optional[PeriodicTask] = None
artifact_purge_task: Optional[PeriodicTask] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for application startup/shutdown"""
    global config, redis_clients, ledger, artifact_store, pipeline
    global plan_expiry_task, artifact_purge_task

    logger.info("=" * 70)
    logger.info("🚀 Starting Companion Orchestrator")
    logger.info("=" * 70)

    config = CompanionConfig.from_env()

    redis_clients = await RedisClients.connect(config.redis)
    records = RecordStore(redis_clients.restricted, namespace=config.redis.namespace)
    service_records = RecordStore(redis_clients.service, namespace=config.redis.namespace)

    artifact_store = ArtifactStore(config.artifacts, records, sweep_records=service_records)
    await artifact_store.initialize()

    ledger = EntitlementLedger(records, service_records, plan_days=config.plan_days)

    pipeline = MessagePipeline(
        ledger=ledger,
        artifacts=artifact_store,
        synthesizer=SpeechSynthesizer(config.tts),
        lipsync=RhubarbLipSync(config.tts),
        generator=GeminiReplyGenerator(config),
        structured_logger=StructuredLogger(logging.getLogger("orchestrator.pipeline")),
    )

    plan_expiry_task = PeriodicTask(
        "Plan expiration sweep",
        config.plan_expiry_interval_hours * 3600,
        ledger.expire_stale_plans,
    )
    artifact_purge_task = PeriodicTask(
        "Artifact purge",
        config.artifact_purge_interval_hours * 3600,
        artifact_store.purge_expired,
    )
    plan_expiry_task.start()
    artifact_purge_task.start()

    logger.info(f"📋 Environment check: {config.environment_check()}")
    logger.info("=" * 70)
    logger.info(f"✅ Companion Orchestrator ready on port {config.port}")
    logger.info("=" * 70)

    yield

    logger.info("=" * 70)
    logger.info("🛑 Shutting down Companion Orchestrator")
    logger.info("=" * 70)

    for task in (plan_expiry_task, artifact_purge_task):
        if task:
            await task.stop()

    if redis_clients:
        await redis_clients.close()


app = FastAPI(
    title="Companion Orchestrator",
    description="Conversational companion backend: replies with synthesized speech and lip-sync",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CompanionConfig.cors_origins_from_env(),
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/", response_class=PlainTextResponse)
async def root():
    return "Backend is running! Try POST /chat or GET /health"


@app.get("/health")
async def health():
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.post("/chat")
async def chat(request: ChatRequest):
    """
    Reply to one user message.

    200 with segments and the remaining quota, 400 without a user id,
    429 with an upgrade offer when the daily quota is spent, 500 when the
    pipeline fails as a whole.
    """
    if not request.userId:
        return JSONResponse(status_code=400, content={"error": "User ID is required"})

    try:
        result = await pipeline.handle(request.userId, request.message)
    except PipelineConfigurationError as e:
        return JSONResponse(status_code=500, content={"error": e.message})
    except PipelineError as e:
        return JSONResponse(status_code=500, content={"error": e.message, "details": e.detail})

    if result.outcome is ChatOutcome.QUOTA_EXCEEDED:
        return JSONResponse(
            status_code=429,
            content={
                "error": "Message limit reached",
                "upgradeRequired": True,
                "remaining": result.remaining,
                "plans": UPGRADE_PLANS,
            },
        )

    return result.to_dict()


@app.post("/verify-payment")
async def verify_payment(request: VerifyPaymentRequest):
    """Redeem a payment code: 200 on success, 400 invalid or used code, 500 otherwise."""
    if not request.userId or not request.transactionId or not request.planType:
        return JSONResponse(status_code=400, content={"success": False, "error": "Missing required fields"})

    result = await ledger.verify_payment(request.userId, request.transactionId, request.planType)
    if result.success:
        return result.to_dict()

    status_code = 500 if result.reason == "processing_failed" else 400
    return JSONResponse(status_code=status_code, content=result.to_dict())


@app.get("/audio/{user_id}/{session_id}/{message_index}")
async def replay_audio(user_id: str, session_id: str, message_index: int):
    """Serve a retained synthesized segment until the purge removes it."""
    try:
        path = artifact_store.replay_path(user_id, session_id, message_index)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    if path is None:
        return JSONResponse(status_code=404, content={"error": "Audio not found"})

    return FileResponse(path, media_type="audio/mpeg")


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=CompanionConfig.from_env().port, log_level="info")
