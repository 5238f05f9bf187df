from __future__ import annotations


class AppError(Exception):
    pass


class BusinessError(AppError):
    pass


class ValidationError(BusinessError):
    pass


class NotFoundError(BusinessError):
    pass


class AuthorizationError(BusinessError):
    pass


class InfraError(AppError):
    pass


class ConfigurationError(InfraError):
    pass


class PersistenceError(InfraError):
    pass


class ExternalServiceError(InfraError):
    pass


class ConnectivityError(ExternalServiceError):
    pass


class TransientExternalError(ExternalServiceError):
    pass


class SyncTableError(AppError):
    def __init__(self, schema: str, table: str, message: str) -> None:
        super().__init__(f"Error syncing {schema}.{table}: {message}")
        self.schema = schema
        self.table = table
        self.reason = message


class LayoutError(AppError):
    pass


class DocumentError(AppError):
    pass
