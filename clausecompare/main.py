from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from datetime import datetime
import logging
import uvicorn

from clausecompare.config.config import Config
from clausecompare.routes import comparison_routes, system_health_routes


def configure_logging():
    handlers = [logging.StreamHandler()]
    if Config.LOG_TO_FILE:
        Config.LOG_DIR.mkdir(exist_ok=True)
        handlers.append(
            logging.FileHandler(Config.LOG_DIR / f'clausecompare_{datetime.now().strftime("%Y%m%d_%H%M%S")}.log')
        )
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Config.initialize()
    logger.info("=" * 80)
    logger.info("ClauseCompare - Clause-Level Document Comparison v%s", system_health_routes.SERVICE_VERSION)
    logger.info("  - POST /api/v1/comparison/clauses    (deterministic clause matching)")
    logger.info("  - POST /api/v1/comparison/documents  (Gemini extraction + matching)")
    logger.info("=" * 80)
    yield
    logger.info("ClauseCompare shutting down")


app = FastAPI(
    title="ClauseCompare - Clause-Level Legal Document Comparison",
    version=system_health_routes.SERVICE_VERSION,
    description="Bigram similarity clause matching with an automated favorability verdict",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(comparison_routes.router)
app.include_router(system_health_routes.router)


if __name__ == "__main__":
    uvicorn.run(
        "clausecompare.main:app",
        host=Config.HOST,
        port=Config.PORT,
        reload=Config.DEBUG
    )
