# ischoolgo/backend/api/schemas/ai.py
from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ...models.db_models import StudentDetail


class ChatRequest(BaseModel):
    message: str
    context: Optional[str] = None


class ChatResponse(BaseModel):
    response: str
    timestamp: datetime


class AnalyzeStudentRequest(BaseModel):
    student_id: UUID


class StudentMetrics(BaseModel):
    attendance_rate: float
    payment_status: str
    risk_level: str


class StudentAnalysisResponse(BaseModel):
    student: StudentDetail
    analysis: str
    metrics: StudentMetrics
    timestamp: datetime


class MarketingRequest(BaseModel):
    campaign_type: str
    target_audience: str
    additional_context: Optional[str] = None


class MarketingResponse(BaseModel):
    content: str
    campaign_type: str
    target_audience: str
    timestamp: datetime


class AtRiskStudent(BaseModel):
    id: UUID
    name: str
    group_name: Optional[str] = None
    attended_sessions: int
    total_sessions: int
    attendance_rate: float
    payment_status: str
    ai_analysis: str


class AtRiskResponse(BaseModel):
    at_risk_students: List[AtRiskStudent]
    total_analyzed: int
    risk_count: int
    timestamp: datetime
