from datetime import date

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from nss_events.core.database import get_db
from nss_events.schemas.analytics import AnalyticsFilters, AnalyticsResponse
from nss_events.services.analytics_service import AnalyticsService

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/attendance", response_model=AnalyticsResponse, response_model_exclude_unset=True)
def get_attendance_analytics(
    filters: AnalyticsFilters = Depends(),
    db: Session = Depends(get_db),
):
    """
    Year-wise (cohort) or month-wise attendance over completed events.
    """
    result = AnalyticsService(db).get_attendance_analytics(filters)
    return {"success": True, **result}


@router.get("/attendance/export")
def export_attendance_analytics(
    filters: AnalyticsFilters = Depends(),
    db: Session = Depends(get_db),
):
    content = AnalyticsService(db).export_csv(filters)
    filename = f"attendance-analytics-{filters.viewMode}-{date.today().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
