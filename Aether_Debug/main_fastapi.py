"""
FastAPI Main module for AetherDebug
Serves the editor page and the endpoints behind it
"""

import os
import json
import asyncio
from datetime import datetime
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv, find_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, StreamingResponse
from pydantic import BaseModel

# Import from our modules
from .models import (
    LANGUAGES, LANGUAGE_VALUES,
    ExplainErrorInput, ExplainErrorOutput,
    SuggestCodeFixInput, SuggestCodeFixOutput,
    GenerateCodeInput, GenerateCodeOutput,
)
from .functions import (
    explain_error, suggest_code_fix, generate_code_from_description,
    run_code, run_code_streaming,
)
from .session_store import (
    create_session, get_session, delete_session, count_sessions,
)


_ = load_dotenv(find_dotenv())
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:9002").split(",")
    if origin.strip()
]

if not GEMINI_API_KEY:
    raise ValueError("GEMINI_API_KEY environment variable is required")

EDITOR_PAGE = Path(__file__).parent / "static" / "index.html"

app = FastAPI(
    title="AetherDebug",
    description="AI-assisted code runner and debugger API",
    version="1.0.0"
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CreateSessionRequest(BaseModel):
    language: Optional[str] = "javascript"

class CodeUpdateRequest(BaseModel):
    code: str

class LanguageRequest(BaseModel):
    language: str

class SessionResponse(BaseModel):
    session_id: str
    language: str
    code: str
    output: str
    error_explanation: str
    suggested_fix: str
    is_loading: bool

class RunResponse(BaseModel):
    session: SessionResponse
    notices: list


def require_session(session_id: str):
    session = get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def require_idle_session(session_id: str):
    session = require_session(session_id)
    if session.is_loading:
        raise HTTPException(status_code=409, detail="A run is already in progress for this session")
    return session


@app.get("/", response_class=HTMLResponse)
async def editor_page():
    """Editor page"""
    return HTMLResponse(EDITOR_PAGE.read_text(encoding="utf-8"))


@app.get("/api/v1")
async def root():
    """Root endpoint with API information"""
    return {
        "message": "AetherDebug API",
        "version": "1.0.0",
        "endpoints": {
            "sessions": "/api/v1/sessions - Create and drive editor sessions",
            "explain_error": "/api/v1/explain_error - Explain a runtime error",
            "suggest_code_fix": "/api/v1/suggest_code_fix - Suggest a fix for broken code",
            "generate_code": "/api/v1/generate_code - Generate code from a description"
        }
    }


@app.get("/api/v1/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "timestamp": datetime.now().isoformat(), "active_sessions": count_sessions()}


@app.get("/api/v1/languages")
async def list_languages():
    return {"languages": LANGUAGES}


# -------------------
# Editor sessions
# -------------------

@app.post("/api/v1/sessions", response_model=SessionResponse)
async def create_session_endpoint(request: Optional[CreateSessionRequest] = None):
    """Create a session for a freshly loaded editor page"""
    language = request.language if request and request.language else "javascript"
    if language not in LANGUAGE_VALUES:
        raise HTTPException(status_code=400, detail=f"Unsupported language: {language}")
    session = create_session(language)
    return session.get_state()


@app.get("/api/v1/sessions/{session_id}", response_model=SessionResponse)
async def get_session_endpoint(session_id: str):
    return require_session(session_id).get_state()


@app.put("/api/v1/sessions/{session_id}/code", response_model=SessionResponse)
async def update_code(session_id: str, request: CodeUpdateRequest):
    session = require_session(session_id)
    session.set_code(request.code)
    return session.get_state()


@app.put("/api/v1/sessions/{session_id}/language", response_model=SessionResponse)
async def select_language(session_id: str, request: LanguageRequest):
    """Switch language; code, output and AI panels reset to their defaults"""
    session = require_idle_session(session_id)
    try:
        session.select_language(request.language)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return session.get_state()


@app.delete("/api/v1/sessions/{session_id}")
async def delete_session_endpoint(session_id: str):
    if not delete_session(session_id):
        raise HTTPException(status_code=404, detail="Session not found")
    return {"status": "deleted", "session_id": session_id}


@app.post("/api/v1/sessions/{session_id}/run", response_model=RunResponse)
async def run_session(session_id: str):
    """Run the code, then explain the error, then suggest a fix"""
    session = require_idle_session(session_id)
    try:
        notices = await run_code(session)
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"session": session.get_state(), "notices": notices}


@app.post("/api/v1/sessions/{session_id}/run/stream")
async def run_session_streaming(session_id: str):
    """Same as /run, streamed as Server-Sent Events"""
    session = require_idle_session(session_id)
    # Claim the session now; the body only starts running once the response is sent
    session.is_loading = True

    async def generate():
        try:
            async for event in run_code_streaming(session):
                yield f"data: {json.dumps(event)}\n\n"
                await asyncio.sleep(0.005)
        except Exception as e:
            print(f"❌ Error in run stream: {e}")
            yield f"data: {json.dumps({'type': 'error', 'chunk': str(e)})}\n\n"
            return
        finally:
            session.is_loading = False

        yield f"data: {json.dumps({'done': True, 'type': 'complete', 'session': session.get_state()})}\n\n"

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"}
    )


# -------------------
# Prompt endpoints
# -------------------

@app.post("/api/v1/explain_error", response_model=ExplainErrorOutput)
async def explain_error_endpoint(request: ExplainErrorInput):
    try:
        return await explain_error(request.code, request.language, request.error_message)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error explanation failed: {str(e)}")


@app.post("/api/v1/suggest_code_fix", response_model=SuggestCodeFixOutput)
async def suggest_code_fix_endpoint(request: SuggestCodeFixInput):
    try:
        return await suggest_code_fix(request.code, request.language, request.error_description)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Fix suggestion failed: {str(e)}")


@app.post("/api/v1/generate_code", response_model=GenerateCodeOutput)
async def generate_code_endpoint(request: GenerateCodeInput):
    try:
        return await generate_code_from_description(request.description, request.language)
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Code generation failed: {str(e)}")


# -------------------
# Run the application
# -------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
