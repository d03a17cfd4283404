import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tutor_backend.api.exam_materials import exam_material_router
from tutor_backend.api.teacher_materials import teacher_material_router
from tutor_backend.api.teacher_permissions import teacher_permission_router
from tutor_backend.settings import settings

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    if not settings.API_TOKENS:
        logger.warning("API_TOKENS is empty; every authenticated request will be rejected")
    yield

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(
    teacher_permission_router,
    prefix="/teacher-permissions",
    tags=["teacher permissions"]
)

app.include_router(
    exam_material_router,
    prefix="/exam-materials",
    tags=["exam materials"]
)

app.include_router(
    teacher_material_router,
    prefix="/teacher",
    tags=["teacher"]
)

@app.get("/", tags=["health"])
def health():
    return {"status": "ok"}
