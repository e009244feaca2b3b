import uvicorn
from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware

from studyhub.database import lifespan
from studyhub.errors import StudyHubError
from studyhub.utils.config import APP_PORT
from studyhub.utils.logs.middleware import LoggingMiddleware
from studyhub.controllers.groups import router as group_router
from studyhub.controllers.messaging import router as group_message_router
from studyhub.controllers.websocket import router as websocket_router
from studyhub.views.responses import ErrorResponse, OrjsonResponse

app: FastAPI = FastAPI(
    title="StudyHub Groups",
    lifespan=lifespan,
    default_response_class=OrjsonResponse,
)

app.include_router(websocket_router)
app.include_router(group_router)
app.include_router(group_message_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)
app.add_middleware(LoggingMiddleware)


@app.exception_handler(StudyHubError)
async def studyhub_error_handler(request: Request, exc: StudyHubError):
    """Typed service errors become the standard error envelope."""
    return OrjsonResponse(
        status_code=exc.status_code,
        content=ErrorResponse.from_error(exc, path=request.url.path, method=request.method),
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for load balancers and monitoring."""
    return {"status": "healthy"}


if __name__ == "__main__":
    uvicorn.run(
        app="studyhub.main:app",
        host="0.0.0.0",
        port=APP_PORT,
        log_level="info"
    )
