from fastapi import APIRouter

from lanmon.api.v1.agents import router as agents_router
from lanmon.api.v1.alerts import router as alerts_router
from lanmon.api.v1.chat import router as chat_router
from lanmon.api.v1.fallback import router as fallback_router
from lanmon.api.v1.gpu import router as gpu_router
from lanmon.api.v1.health import router as health_router
from lanmon.api.v1.ideas import router as ideas_router
from lanmon.api.v1.services import router as services_router
from lanmon.api.v1.tickets import router as tickets_router

v1_router = APIRouter()

# Monitoring
v1_router.include_router(health_router, tags=["Health"])
v1_router.include_router(services_router, tags=["Services"])
v1_router.include_router(gpu_router, tags=["GPU"])
v1_router.include_router(alerts_router, tags=["Alerts"])

# Tracker
v1_router.include_router(tickets_router, tags=["Tickets"])
v1_router.include_router(ideas_router, tags=["Ideas"])

# Agents
v1_router.include_router(agents_router, tags=["Agents"])
v1_router.include_router(chat_router, tags=["Chat"])

# Must stay last: swallows every unmatched /api path
v1_router.include_router(fallback_router)
