"""
Point d'entrée de l'API Rentverse
"""
import uvicorn

from app_config import AppConfigurator
from settings import Settings
from constants import APP_NAME, APP_VERSION

app = AppConfigurator.create_app(Settings.from_env())


@app.get("/")
def root():
    return {"message": f"API {APP_NAME} opérationnelle", "version": APP_VERSION}


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
