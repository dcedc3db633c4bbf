from fastapi import APIRouter
from clausecompare.config.config import Config
from clausecompare.services.taxonomy import TAXONOMIES

SERVICE_VERSION = "1.0.0"

router = APIRouter(
    prefix="/api/system",
    tags=["System Health"]
)


@router.get("/health")
async def health_check():
    """Check system health and model status"""
    return {
        "status": "healthy",
        "version": SERVICE_VERSION,
        "models": {
            "clause_extraction": Config.GEMINI_MODEL
        },
        "services": {
            "clause_matching": "ready",
            "clause_extraction": "configured" if Config.GEMINI_API_KEY else "missing GEMINI_API_KEY"
        },
        "policy": {
            "match_threshold": Config.MATCH_THRESHOLD,
            "identical_threshold": Config.IDENTICAL_THRESHOLD,
            "verdict_balance_margin": Config.VERDICT_BALANCE_MARGIN,
            "default_taxonomy": Config.DEFAULT_TAXONOMY
        }
    }


@router.get("/")
async def root():
    return {
        "service": "ClauseCompare - Clause-Level Legal Document Comparison",
        "version": SERVICE_VERSION,
        "endpoints": {
            "comparison": {
                "clauses": "/api/v1/comparison/clauses",
                "documents": "/api/v1/comparison/documents",
                "taxonomies": "/api/v1/comparison/taxonomies"
            },
            "system": {
                "health": "/api/system/health",
                "docs": "/docs"
            }
        },
        "taxonomies": list(TAXONOMIES),
        "usage": {
            "1_clauses": "POST /api/v1/comparison/clauses with two {name, categories} objects",
            "2_documents": "POST /api/v1/comparison/documents with file_a and file_b (multipart)"
        },
        "disclaimer": "Verdicts are automated guidance, not legal advice."
    }
