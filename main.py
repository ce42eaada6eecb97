# Fallback entrypoint for platforms that auto-detect a root-level FastAPI/ASGI app.
# Delegates to escalation_engine.main.
from escalation_engine.main import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("escalation_engine.main:app", host="0.0.0.0", port=8000)
