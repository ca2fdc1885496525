"""Error taxonomy shared by the services and rendered by the API layer."""


class PaymentError(Exception):
    code = "error"
    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(PaymentError):
    code = "bad_request"
    status_code = 400
    default_message = "Missing payment details"


class UnknownOrder(BadRequest):
    code = "unknown_order"
    default_message = "Order was not created by this server"


class InvalidSignature(PaymentError):
    code = "invalid_signature"
    status_code = 400
    default_message = "Invalid payment signature"


class PaymentFailed(PaymentError):
    code = "payment_failed"
    status_code = 402
    default_message = "Payment did not go through"


class GatewayUnavailable(PaymentError):
    code = "gateway_unavailable"
    status_code = 503
    default_message = "Error talking to the payment gateway, please check again shortly"


class GrantNotFound(PaymentError):
    code = "not_found"
    status_code = 404
    default_message = "Invalid download link"


class GrantAlreadyUsed(PaymentError):
    code = "already_used"
    status_code = 403
    default_message = "This download link has already been used"


class GrantExpired(PaymentError):
    code = "expired"
    status_code = 410
    default_message = "Download link has expired"


class ArtifactMissing(PaymentError):
    code = "artifact_missing"
    status_code = 503
    default_message = "The guide is temporarily unavailable, please retry your link later"
