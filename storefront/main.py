from storefront.application.http.fastapi.api import create_app
from storefront.config import Settings
from storefront.logging_config import configure_logging

# (poetry run uvicorn storefront.main:app --reload)
# http://127.0.0.1:8000/docs

settings = Settings()
configure_logging(settings.log_level)
app = create_app(settings)
