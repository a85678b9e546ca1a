import uvicorn

from fleetwatch.config import Settings
from fleetwatch.main import app

if __name__ == "__main__":
    settings = Settings()
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
