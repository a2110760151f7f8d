"""Route handlers for the Web API."""

from tilawa.web.routes.health import router as health_router
from tilawa.web.routes.teachers import router as teachers_router
from tilawa.web.routes.students import router as students_router
from tilawa.web.routes.recitations import router as recitations_router
from tilawa.web.routes.reports import router as reports_router
from tilawa.web.routes.data import router as data_router

__all__ = [
    "health_router",
    "teachers_router",
    "students_router",
    "recitations_router",
    "reports_router",
    "data_router",
]
