# ==========================================================
#                  SERVICE EXCEPTIONS
# ==========================================================
from flask import jsonify


class ServiceError(Exception):
    """Base exception for category and ledger services"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": self.message}


class NotFoundError(ServiceError):
    status_code = 404


class ValidationError(ServiceError):
    status_code = 400


class ConflictError(ServiceError):
    status_code = 409


class UnauthorizedError(ServiceError):
    status_code = 403


class ExternalGatewayError(ServiceError):
    status_code = 502


class WithdrawalFailedError(ExternalGatewayError):
    """Payout submission failed and the debit was refunded"""

    def __init__(self, message: str, withdrawal_id: int = None):
        super().__init__(message)
        self.withdrawal_id = withdrawal_id

    def to_dict(self):
        data = super().to_dict()
        if self.withdrawal_id is not None:
            data["withdrawal_id"] = self.withdrawal_id
        return data


def register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        if error.status_code >= 500:
            app.logger.error(f"{error.__class__.__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code
