from typing import Any, Dict, Optional


class NegotiationError(Exception):
    def __init__(self, code: str, message: Optional[str] = None) -> None:
        self.code = code
        self.message = message or code
        super().__init__(f"{code}: {self.message}" if message else code)

    def to_detail(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class NegotiationValidationError(NegotiationError):
    def __init__(self, code: str, message: Optional[str] = None, *, field: Optional[str] = None):
        super().__init__(code, message)
        self.field = field

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        if self.field is not None:
            detail["field"] = self.field
        return detail


class NegotiationNotFoundError(NegotiationError):
    pass


class NegotiationStateConflictError(NegotiationError):
    def __init__(
        self,
        code: str,
        message: Optional[str] = None,
        *,
        current_status: Optional[str] = None,
    ) -> None:
        super().__init__(code, message)
        self.current_status = current_status

    def to_detail(self) -> Dict[str, Any]:
        detail = super().to_detail()
        if self.current_status is not None:
            detail["current_status"] = self.current_status
        return detail
