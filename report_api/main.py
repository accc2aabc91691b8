# report_api/main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .log import setup_logging
from .config import CORS_ORIGINS
from .routes.render import router as render_router
from .routes.reports import router as reports_router

log = setup_logging()

app = FastAPI(title="Report Engine API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(reports_router)
app.include_router(render_router)

@app.get("/health")
def health():
    return {"status": "ok"}
