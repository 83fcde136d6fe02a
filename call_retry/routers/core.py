from fastapi import APIRouter

router = APIRouter(tags=["Core"])


# GET /
# Gets: nothing
# Returns: basic API metadata and a map of key endpoints
# Example:
#   curl http://localhost:8000/
@router.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Call Retry Scheduler API",
        "version": "1.0.0",
        "description": "Decides when to retry outbound intake calls within the customer's business hours",
        "endpoints": {
            "resolve_timezone": "/timezone",
            "decide_retry": "/retry/decide",
            "retry_config": "/retry/config",
            "business_hours_check": "/business-hours/check",
            "health": "/health",
            "metrics": "/metrics",
        },
        "features": [
            "Timezone detection from phone number",
            "Business-hours aware retry scheduling",
            "Per end-of-call reason retry delays",
            "SMS fallback after max attempts",
        ],
    }
