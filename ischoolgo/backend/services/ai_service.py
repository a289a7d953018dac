import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from ..config.config import settings
from ..db.student_repository import StudentRepository
from ..errors import NotFoundError, ValidationError
from ..modules import aggregates
from ..tools.generative_text import GenerativeTextClient

logger = logging.getLogger(__name__)

ASSISTANT_PROMPT = """You are the assistant of ISCHOOLGO, a school management system.
You help administrators, teachers and staff with student management and analytics,
educational insights, administrative workflows, reporting, and enrollment marketing.
Answer professionally, concisely and with actionable advice.
Context: {context}

User question: {message}"""

STUDENT_ANALYSIS_PROMPT = """Analyze the following student record and give actionable insights.
Student: {name}
Group: {group_name} ({group_level})
Enrollment date: {enrollment_date}
Sessions: {attended_sessions} attended of {total_sessions} ({missed_sessions} missed)
Attendance rate: {attendance_rate}%
Total paid: {total_payments}
Payment status: {payment_status}
Status: {status}

In at most 200 words cover: a performance summary, areas of concern,
concrete recommendations and the dropout risk."""

MARKETING_PROMPT = """Write marketing copy for the ISCHOOLGO educational institution.
Campaign type: {campaign_type}
Target audience: {target_audience}
Additional context: {additional_context}

Include a headline, a two or three sentence main message, three or four key
benefits as bullet points, a call to action and a placeholder for contact details.
Keep it persuasive and tailored to the audience."""

RISK_PROMPT = """Assess the risk factors of this student and recommend interventions.
Student: {name}
Group: {group_name}
Attendance rate: {attendance_rate}
Sessions: {attended_sessions}/{total_sessions}
Payment status: {payment_status}
Enrollment date: {enrollment_date}

In at most 100 words give the main risk factors, the recommended
interventions and how urgent they are."""


def _now() -> datetime:
    return datetime.now(timezone.utc)


class AIService:
    """
    Generative-text operations. Student facts come from the database; the
    prose comes from the injected GenerativeTextClient, whose errors propagate.
    """
    def __init__(self, text_client: GenerativeTextClient, student_repository: StudentRepository):
        self.text_client = text_client
        self.student_repository = student_repository

    async def chat(self, message: str, context: Optional[str] = None) -> Dict[str, Any]:
        if not message or not message.strip():
            raise ValidationError("message is required.")
        prompt = ASSISTANT_PROMPT.format(context=context or "General assistance", message=message)
        response = await self.text_client.generate(prompt)
        return {"response": response, "timestamp": _now()}

    async def analyze_student(self, student_id: UUID, today: Optional[date] = None) -> Dict[str, Any]:
        if student_id is None:
            raise ValidationError("student_id is required.")
        student = await self.student_repository.get_student_detail(student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} does not exist.")

        total = student.total_sessions
        rate = round(student.attended_sessions / total * 100, 1) if total else 0.0
        payment = aggregates.payment_status(
            student.last_payment_date, student.group_fee_amount, today or date.today(), settings.PAYMENT_GRACE_DAYS
        )
        prompt = STUDENT_ANALYSIS_PROMPT.format(
            name=student.name,
            group_name=student.group_name or "No group",
            group_level=student.group_level or "-",
            enrollment_date=student.enrollment_date,
            attended_sessions=student.attended_sessions,
            total_sessions=student.total_sessions,
            missed_sessions=student.missed_sessions,
            attendance_rate=rate,
            total_payments=student.total_payments,
            payment_status=payment,
            status=student.status,
        )
        analysis = await self.text_client.generate(prompt)
        logger.info(f"Generated analysis for student {student_id}.")
        return {
            "student": student,
            "analysis": analysis,
            "metrics": {
                "attendance_rate": rate,
                "payment_status": payment,
                "risk_level": aggregates.risk_level(rate),
            },
            "timestamp": _now(),
        }

    async def generate_marketing(
        self, campaign_type: str, target_audience: str, additional_context: Optional[str] = None
    ) -> Dict[str, Any]:
        if not campaign_type or not target_audience:
            raise ValidationError("campaign_type and target_audience are required.")
        prompt = MARKETING_PROMPT.format(
            campaign_type=campaign_type,
            target_audience=target_audience,
            additional_context=additional_context or "None",
        )
        content = await self.text_client.generate(prompt)
        return {
            "content": content,
            "campaign_type": campaign_type,
            "target_audience": target_audience,
            "timestamp": _now(),
        }

    async def predict_at_risk(self, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Flags active students whose trailing-window attendance is below the
        threshold or whose payments are behind, and asks for commentary on each.
        """
        today = today or date.today()
        since = today - timedelta(days=settings.AT_RISK_WINDOW_DAYS)
        roster = await self.student_repository.get_risk_facts(since)

        at_risk = []
        for student in roster:
            total = student["total_sessions"]
            rate = student["attended_sessions"] / total * 100 if total else 0.0
            payment = aggregates.payment_status(
                student["last_payment_date"], student["fee_amount"], today, settings.PAYMENT_GRACE_DAYS
            )
            if not aggregates.is_at_risk(rate, payment, settings.AT_RISK_ATTENDANCE_THRESHOLD):
                continue

            prompt = RISK_PROMPT.format(
                name=student["name"],
                group_name=student["group_name"] or "No group",
                attendance_rate=f"{rate:.1f}%",
                attended_sessions=student["attended_sessions"],
                total_sessions=total,
                payment_status=payment,
                enrollment_date=student["enrollment_date"],
            )
            at_risk.append({
                "id": student["id"],
                "name": student["name"],
                "group_name": student["group_name"],
                "attended_sessions": student["attended_sessions"],
                "total_sessions": total,
                "attendance_rate": round(rate, 1),
                "payment_status": payment,
                "ai_analysis": await self.text_client.generate(prompt),
            })

        logger.info(f"At-risk prediction: {len(at_risk)} of {len(roster)} active students flagged.")
        return {
            "at_risk_students": at_risk,
            "total_analyzed": len(roster),
            "risk_count": len(at_risk),
            "timestamp": _now(),
        }
