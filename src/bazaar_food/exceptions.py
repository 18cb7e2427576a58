class OrderFlowError(ValueError):
    """
    Базовая ошибка бизнес-логики заказа.
    Сообщение отдаётся клиенту как есть, code позволяет различать причины.
    """

    code = "OrderFlowError"
    status_code = 400
    default_message = "Operation is not allowed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class NotFoundError(OrderFlowError):
    code = "NotFound"
    status_code = 404
    default_message = "Not found"


class OrderNotFound(NotFoundError):
    code = "OrderNotFound"
    default_message = "Order not found"


class RestaurantNotFound(NotFoundError):
    code = "RestaurantNotFound"
    default_message = "Restaurant not found"


# --- ошибки валидации ---

class InvalidPayload(OrderFlowError):
    code = "InvalidPayload"
    default_message = "Invalid payload"


class ItemUnavailable(OrderFlowError):
    code = "ItemUnavailable"
    default_message = "Menu item not available"


class PayerNameRequired(OrderFlowError):
    code = "PayerNameRequired"
    default_message = "Payer name must be at least 2 characters"


class ReasonRequired(OrderFlowError):
    code = "ReasonRequired"
    default_message = "Cancel reason is required"


# --- нарушения переходов статуса ---

class NotBankOrder(OrderFlowError):
    code = "NotBankOrder"
    default_message = "Order is not paid by bank transfer"


class OrderNotPayable(OrderFlowError):
    code = "OrderNotPayable"
    default_message = "Order is no longer awaiting payment"


class PaymentNotConfirmed(OrderFlowError):
    code = "PaymentNotConfirmed"
    default_message = "Payment is not confirmed yet"


class AlreadyDelivered(OrderFlowError):
    code = "AlreadyDelivered"
    default_message = "Delivered order cannot be canceled"


class OrderCanceled(OrderFlowError):
    code = "OrderCanceled"
    default_message = "Order is canceled"


class InvalidTransition(OrderFlowError):
    code = "InvalidTransition"
    default_message = "Status transition is not allowed"
