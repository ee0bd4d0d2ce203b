"""
Gestionnaires d'erreurs centralisés pour l'application Rentverse
Standardisation de la gestion et du format des erreurs
"""
from typing import Dict, Any, Union
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from constants import ERROR_MESSAGES

logger = logging.getLogger(__name__)

HTTP_423_LOCKED = 423


class ErrorResponse:
    """Structure standardisée pour les réponses d'erreur"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        status_code: int = 400
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convertit en dictionnaire pour la réponse JSON"""
        response = {
            "error": True,
            "message": self.message
        }

        if self.error_code:
            response["error_code"] = self.error_code

        if self.details:
            response["details"] = self.details

        return response

    def to_json_response(self, headers: Dict[str, str] = None) -> JSONResponse:
        """Retourne une JSONResponse FastAPI"""
        return JSONResponse(
            status_code=self.status_code,
            content=self.to_dict(),
            headers=headers
        )


# ==================== ERREURS MÉTIER ====================

class AppError(Exception):
    """Erreur métier catégorisée, convertie en réponse HTTP par le gestionnaire global"""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INTERNAL_ERROR"
    default_message = ERROR_MESSAGES["INTERNAL_ERROR"]

    def __init__(self, message: str = None, details: Dict[str, Any] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_error_response(self) -> ErrorResponse:
        return ErrorResponse(
            message=self.message,
            error_code=self.error_code,
            details=self.details,
            status_code=self.status_code
        )


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"
    default_message = ERROR_MESSAGES["RESOURCE_NOT_FOUND"]

    @classmethod
    def for_resource(cls, resource: str, resource_id: Union[int, str] = None) -> "NotFoundError":
        message = f"{resource} non trouvé(e)"
        if resource_id is not None:
            message += f" (ID: {resource_id})"
        return cls(message, {"resource_type": resource, "resource_id": resource_id})


class UnauthorizedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "UNAUTHORIZED"
    default_message = ERROR_MESSAGES["TOKEN_MISSING"]


class InvalidCredentialsError(UnauthorizedError):
    error_code = "INVALID_CREDENTIALS"
    default_message = ERROR_MESSAGES["INVALID_CREDENTIALS"]


class AccessDeniedError(UnauthorizedError):
    """Identité connue mais action non permise"""
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "ACCESS_DENIED"
    default_message = ERROR_MESSAGES["ACCESS_DENIED"]


class AlreadyExistsError(AppError):
    status_code = status.HTTP_409_CONFLICT
    error_code = "ALREADY_EXISTS"
    default_message = ERROR_MESSAGES["EMAIL_ALREADY_EXISTS"]


class ValidationFailedError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_FAILED"
    default_message = "Données invalides"


class AccountLockedError(AppError):
    status_code = HTTP_423_LOCKED
    error_code = "ACCOUNT_LOCKED"
    default_message = ERROR_MESSAGES["ACCOUNT_LOCKED"]


class InternalError(AppError):
    pass


# ==================== GESTIONNAIRES ====================

class ValidationErrorHandler:
    """Gestionnaire pour les erreurs de validation des requêtes"""

    @staticmethod
    def handle_validation_error(error: RequestValidationError) -> ErrorResponse:
        """
        Formate les erreurs de validation Pydantic
        """
        validation_errors = []

        for error_detail in error.errors():
            field_path = " -> ".join(str(loc) for loc in error_detail["loc"])

            validation_errors.append({
                "field": field_path,
                "message": error_detail["msg"],
                "type": error_detail["type"]
            })

        return ErrorResponse(
            message="Erreurs de validation des données",
            error_code="VALIDATION_ERROR",
            details={
                "validation_errors": validation_errors,
                "error_count": len(validation_errors)
            },
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        )


class DatabaseErrorHandler:
    """Gestionnaire pour les erreurs de base de données"""

    @staticmethod
    def handle_integrity_error(error: IntegrityError) -> ErrorResponse:
        """
        Gère les erreurs d'intégrité (doublons principalement)
        """
        error_message = str(error.orig).lower()

        if "duplicate" in error_message or "unique" in error_message:
            return ErrorResponse(
                message="Cette valeur existe déjà dans la base de données",
                error_code="DUPLICATE_ENTRY",
                status_code=status.HTTP_409_CONFLICT
            )

        return ErrorResponse(
            message="Erreur de contrainte de base de données",
            error_code="INTEGRITY_ERROR",
            status_code=status.HTTP_400_BAD_REQUEST
        )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Erreur %s sur %s %s: %s", exc.error_code, request.method, request.url.path, exc.message)
    return exc.to_error_response().to_json_response()


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return ValidationErrorHandler.handle_validation_error(exc).to_json_response()


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Erreur d'intégrité sur %s %s: %s", request.method, request.url.path, exc.orig)
    return DatabaseErrorHandler.handle_integrity_error(exc).to_json_response()


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Erreur base de données sur %s %s", request.method, request.url.path)
    return InternalError().to_error_response().to_json_response()


def register_exception_handlers(app: FastAPI):
    """Branche tous les gestionnaires d'exceptions sur l'application"""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
