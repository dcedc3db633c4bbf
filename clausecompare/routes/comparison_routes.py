"""
Clause Comparison API Routes
"""
from fastapi import APIRouter, HTTPException, Depends, File, Form, UploadFile, status
from pydantic import BaseModel, Field, field_validator
from functools import lru_cache
from typing import Dict, List, Optional
import asyncio
import logging

from clausecompare.config.config import Config
from clausecompare.services.clause_extractor import ClauseExtractor
from clausecompare.services.document_comparison import ClauseComparator, ComparisonReport
from clausecompare.services.document_processor import DocumentProcessor
from clausecompare.services.errors import (
    ClauseExtractionError,
    DocumentProcessingError,
    InvalidClauseInputError,
    UnknownTaxonomyError,
)
from clausecompare.services.LLM_tracker import LLMUsageManager
from clausecompare.services.taxonomy import TAXONOMIES, Taxonomy, get_taxonomy, list_taxonomies
from clausecompare.services.verdict import FavorabilityHeuristic
from clausecompare.utils.file_handler import FileHandler

logger = logging.getLogger(__name__)

NO_CLAUSES_MESSAGE = "Could not find legal clauses - check the file is text/PDF and not a scanned image"

# Create router
router = APIRouter(
    prefix="/api/v1/comparison",
    tags=["Clause Comparison"]
)


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class DocumentClauses(BaseModel):
    """Categorized clauses of one document"""
    name: str = Field(..., min_length=1, description="Display name of the document")
    categories: Dict[str, Optional[List[str]]] = Field(
        default_factory=dict,
        description="Category key -> clause texts; missing categories count as empty"
    )


class ClauseComparisonRequest(BaseModel):
    """Request model for comparing pre-extracted clauses"""
    document_a: DocumentClauses
    document_b: DocumentClauses
    taxonomy: str = Field(Config.DEFAULT_TAXONOMY, description="Category taxonomy name")
    threshold: Optional[float] = Field(None, ge=0.0, le=1.0, description="Match threshold override")

    @field_validator("taxonomy")
    @classmethod
    def taxonomy_must_exist(cls, v):
        if v not in TAXONOMIES:
            raise ValueError(f"Unknown taxonomy '{v}'. Available: {', '.join(TAXONOMIES)}")
        return v


class MatchedPairDetail(BaseModel):
    text_a: str
    text_b: str
    similarity: float
    identical: bool


class UniqueClauseDetail(BaseModel):
    text: str
    owner: str


class CategoryComparisonDetail(BaseModel):
    title: str
    matched: List[MatchedPairDetail]
    unique_to_a: List[UniqueClauseDetail]
    unique_to_b: List[UniqueClauseDetail]


class ComparisonCounts(BaseModel):
    matched: int
    identical: int
    unique_to_a: int
    unique_to_b: int


class ComparisonSummary(BaseModel):
    totals: ComparisonCounts
    by_category: Dict[str, ComparisonCounts]


class VerdictDetail(BaseModel):
    advantage_a: int
    advantage_b: int
    favored: Optional[str] = None
    margin: int
    message: str
    disclaimer: str


class ComparisonResponse(BaseModel):
    """Clause-by-clause comparison report"""
    doc_names: List[str]
    taxonomy: str
    threshold: float
    risk_category: Optional[str] = None
    categories: Dict[str, CategoryComparisonDetail]
    summary: ComparisonSummary
    verdict: VerdictDetail


class DocumentComparisonResponse(ComparisonResponse):
    """Comparison report for uploaded documents, with AI extraction details"""
    document_summaries: Dict[str, str] = {}
    ai_metadata: Optional[Dict] = None


class ErrorResponse(BaseModel):
    """Error response"""
    error: str
    detail: Optional[str] = None
    code: Optional[str] = None


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_file_handler() -> FileHandler:
    return FileHandler()


def get_document_processor() -> DocumentProcessor:
    return DocumentProcessor()


@lru_cache(maxsize=1)
def _shared_extractor() -> ClauseExtractor:
    return ClauseExtractor()


def get_clause_extractor() -> ClauseExtractor:
    try:
        return _shared_extractor()
    except ClauseExtractionError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Clause extraction unavailable: {str(e)}"
        )


def get_favorability_heuristic() -> FavorabilityHeuristic:
    return FavorabilityHeuristic()


# ============================================================================
# HELPERS
# ============================================================================

def _resolve_taxonomy(name: str) -> Taxonomy:
    try:
        return get_taxonomy(name)
    except UnknownTaxonomyError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _build_comparator(taxonomy: Taxonomy, threshold: Optional[float]) -> ClauseComparator:
    return ClauseComparator(
        taxonomy=taxonomy,
        threshold=Config.MATCH_THRESHOLD if threshold is None else threshold
    )


def _build_payload(report: ComparisonReport, taxonomy: Taxonomy, heuristic: FavorabilityHeuristic) -> Dict:
    payload = report.to_dict()
    for key, category in payload['categories'].items():
        category['title'] = taxonomy.title(key)
    payload['summary'] = report.summary()
    payload['verdict'] = heuristic.evaluate(report).to_dict()
    return payload


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.get("/taxonomies", summary="List clause category taxonomies")
async def get_taxonomies():
    return {
        "default": Config.DEFAULT_TAXONOMY,
        "taxonomies": list_taxonomies()
    }


@router.post(
    "/clauses",
    response_model=ComparisonResponse,
    status_code=status.HTTP_200_OK,
    summary="Compare pre-extracted clauses",
    description="Match two documents' categorized clauses and derive a favorability verdict",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input shape"},
        422: {"description": "Request validation failed"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def compare_clauses(
    request: ClauseComparisonRequest,
    heuristic: FavorabilityHeuristic = Depends(get_favorability_heuristic)
):
    """
    Deterministic clause comparison

    Each category is matched independently with the bigram Dice similarity and
    greedy best-match pairing. The verdict is automated guidance only.
    """
    try:
        logger.info(f"Clause comparison: {request.document_a.name} vs {request.document_b.name}")

        taxonomy = _resolve_taxonomy(request.taxonomy)
        comparator = _build_comparator(taxonomy, request.threshold)
        report = comparator.compare(
            request.document_a.categories,
            request.document_b.categories,
            (request.document_a.name, request.document_b.name)
        )

        payload = _build_payload(report, taxonomy, heuristic)
        logger.info(f"Comparison complete. Totals: {payload['summary']['totals']}")
        return ComparisonResponse(**payload)

    except HTTPException:
        raise

    except InvalidClauseInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        logger.error(f"Comparison error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Comparison failed: {str(e)}"
        )


@router.post(
    "/documents",
    response_model=DocumentComparisonResponse,
    status_code=status.HTTP_200_OK,
    summary="Compare two uploaded documents",
    description="Extract categorized clauses with Gemini, then compare them clause by clause",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid upload or input"},
        422: {"model": ErrorResponse, "description": "No readable text or no legal clauses found"},
        502: {"model": ErrorResponse, "description": "AI clause extraction failed"},
        503: {"model": ErrorResponse, "description": "AI clause extraction not configured"},
        500: {"model": ErrorResponse, "description": "Internal server error"}
    }
)
async def compare_documents(
    file_a: UploadFile = File(..., description="Document A (.pdf, .docx, .txt)"),
    file_b: UploadFile = File(..., description="Document B (.pdf, .docx, .txt)"),
    instructions: Optional[str] = Form(None, description='e.g. "Focus on liability clauses"'),
    taxonomy: str = Form(Config.DEFAULT_TAXONOMY),
    threshold: Optional[float] = Form(None, ge=0.0, le=1.0),
    file_handler: FileHandler = Depends(get_file_handler),
    processor: DocumentProcessor = Depends(get_document_processor),
    extractor: ClauseExtractor = Depends(get_clause_extractor),
    heuristic: FavorabilityHeuristic = Depends(get_favorability_heuristic)
):
    """
    Upload-to-report comparison

    Steps:
    1. Save both uploads and extract their text
    2. Extract categorized clauses from both documents concurrently
    3. Match clauses per category and derive the verdict
    """
    saved_paths: List[str] = []
    doc_names = (file_a.filename or "Document A", file_b.filename or "Document B")

    try:
        logger.info(f"Document comparison: {doc_names[0]} vs {doc_names[1]}")
        taxonomy_def = _resolve_taxonomy(taxonomy)

        for upload in (file_a, file_b):
            saved_paths.append(await file_handler.save_upload(upload))

        text_a, text_b = await asyncio.gather(
            processor.extract_text(saved_paths[0]),
            processor.extract_text(saved_paths[1])
        )

        usage = LLMUsageManager()
        extraction_a, extraction_b = await asyncio.gather(
            extractor.extract(
                text_a, taxonomy_def, instructions,
                document_name=doc_names[0],
                usage_tracker=usage.get_tracker("document_a", extractor.model_name)
            ),
            extractor.extract(
                text_b, taxonomy_def, instructions,
                document_name=doc_names[1],
                usage_tracker=usage.get_tracker("document_b", extractor.model_name)
            )
        )

        minimum = Config.MIN_CLAUSES_FOR_COMPARISON
        if extraction_a.clause_count < minimum and extraction_b.clause_count < minimum:
            raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=NO_CLAUSES_MESSAGE)

        comparator = _build_comparator(taxonomy_def, threshold)
        report = comparator.compare(extraction_a.categories, extraction_b.categories, doc_names)

        payload = _build_payload(report, taxonomy_def, heuristic)
        payload['document_summaries'] = {
            "document_a": extraction_a.summary,
            "document_b": extraction_b.summary
        }
        payload['ai_metadata'] = usage.get_overall_stats()

        logger.info(f"Comparison complete. Totals: {payload['summary']['totals']}")
        return DocumentComparisonResponse(**payload)

    except HTTPException:
        raise

    except DocumentProcessingError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    except ClauseExtractionError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    except InvalidClauseInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except Exception as e:
        logger.error(f"Comparison error: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Comparison failed: {str(e)}"
        )

    finally:
        for path in saved_paths:
            await file_handler.cleanup(path)
