from fastapi import APIRouter, Depends, Request

from ..models.db_models import User
from ..services.ai_service import AIService
from .schemas.ai import (
    AnalyzeStudentRequest,
    AtRiskResponse,
    ChatRequest,
    ChatResponse,
    MarketingRequest,
    MarketingResponse,
    StudentAnalysisResponse,
)
from .auth import get_current_user
from .dependencies import get_ai_service
from .utilities.limiter import limiter
from .utilities.permissions import ensure_allowed

router = APIRouter(prefix="/ai", tags=["AI"])


@router.post("/chat", response_model=ChatResponse, summary="Ask the assistant a question")
@limiter.limit("20/minute")
async def chat(
    request: Request,
    chat_request: ChatRequest,
    user: User = Depends(get_current_user),
    service: AIService = Depends(get_ai_service),
):
    ensure_allowed(user, "dashboard")
    return await service.chat(chat_request.message, chat_request.context)


@router.post("/analyze-student", response_model=StudentAnalysisResponse, summary="Commentary on one student's record")
@limiter.limit("20/minute")
async def analyze_student(
    request: Request,
    analyze_request: AnalyzeStudentRequest,
    user: User = Depends(get_current_user),
    service: AIService = Depends(get_ai_service),
):
    ensure_allowed(user, "analytics")
    return await service.analyze_student(analyze_request.student_id)


@router.post("/marketing", response_model=MarketingResponse, summary="Generate campaign copy")
@limiter.limit("20/minute")
async def generate_marketing(
    request: Request,
    marketing_request: MarketingRequest,
    user: User = Depends(get_current_user),
    service: AIService = Depends(get_ai_service),
):
    ensure_allowed(user, "marketing")
    return await service.generate_marketing(
        marketing_request.campaign_type,
        marketing_request.target_audience,
        marketing_request.additional_context,
    )


@router.post("/predict-at-risk", response_model=AtRiskResponse, summary="Flag at-risk students with commentary")
@limiter.limit("5/minute")
async def predict_at_risk(
    request: Request,
    user: User = Depends(get_current_user),
    service: AIService = Depends(get_ai_service),
):
    ensure_allowed(user, "analytics")
    return await service.predict_at_risk()
