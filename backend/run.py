import os

import uvicorn


if __name__ == "__main__":
    reload_enabled = str(os.getenv("MAFIA_BACKEND_RELOAD", "0")).strip().lower() in {"1", "true", "yes", "on"}
    uvicorn.run("mafia_io.main:app", host="0.0.0.0", port=8000, reload=reload_enabled)
