import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from qaforge.storage.file_store import LocalJsonStore
from qaforge.core.pipeline.ingestion import IngestionPipeline
from qaforge.core.pipeline.generation import GenerationPipeline
from qaforge.core.generate.llm_client import LLMClient

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup: Initialize singletons ---
    logger.info("Initializing qaforge storage and pipelines...")

    store = LocalJsonStore()
    llm_client = LLMClient()

    app.state.store = store
    app.state.llm_client = llm_client
    app.state.ingestion_pipeline = IngestionPipeline(store)
    app.state.generation_pipeline = GenerationPipeline(store, llm_client)

    # In-memory job tables for batch progress tracking and stop requests
    app.state.jobs_db = {}
    app.state.coordinators = {}

    logger.info("Initialization complete. All systems ready.")

    yield

    # --- Shutdown: ask running batches to stop launching new items ---
    for coordinator in app.state.coordinators.values():
        coordinator.stop()
    logger.info("Shutting down qaforge...")

# Create FastAPI instance
app = FastAPI(
    title="qaforge API",
    description="Heading-aware chunking and concurrent LLM question/answer dataset generation",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Health Check Endpoint
@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}

from qaforge.api.routes import split, generate, datasets

app.include_router(split.router, prefix="/api", tags=["Chunking"])
app.include_router(generate.router, prefix="/api", tags=["Generation"])
app.include_router(datasets.router, prefix="/api", tags=["Datasets"])

@app.get("/", tags=["System"])
def root():
    return {"message": "qaforge API is running."}
