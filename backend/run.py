"""Start the Hall of Elite API with uvicorn."""
import uvicorn

from backend.config import BACKEND_HOST, BACKEND_PORT, BACKEND_RELOAD

if __name__ == "__main__":
    uvicorn.run("backend.main:app", host=BACKEND_HOST, port=BACKEND_PORT, reload=BACKEND_RELOAD)
