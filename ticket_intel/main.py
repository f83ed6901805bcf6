"""
Ticket Intelligence Pipeline - FastAPI Backend
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ticket_intel.config import get_settings
from ticket_intel.middleware.logging_middleware import LoggingMiddleware
from ticket_intel.routes import health, models, tickets, usage

settings = get_settings()

app = FastAPI(
    title="Ticket Intelligence Pipeline",
    description="Support ticket summaries with extracted fields and token usage tracking",
    version=health.APP_VERSION
)

# Middleware added last runs outermost
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

app.include_router(health.router)
app.include_router(tickets.router)
app.include_router(usage.router)
app.include_router(models.router)


@app.get("/")
async def root():
    return {"message": "Ticket Intelligence Pipeline API", "version": health.APP_VERSION}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.fastapi_host, port=settings.fastapi_port)
