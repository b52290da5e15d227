from pydantic import BaseModel


class ApiErrorResponse(BaseModel):
    code: str
    message: str
    category: str
    details: dict | list | str | None = None
    trace_id: str | None = None


class ApiValidationErrorItem(BaseModel):
    field: str | None = None
    message: str
    type: str
    loc: list[str | int] | None = None
    input: object | None = None
    ctx: dict | None = None


class ApiValidationErrorDetails(BaseModel):
    errors: list[ApiValidationErrorItem]


class ApiValidationErrorResponse(ApiErrorResponse):
    details: ApiValidationErrorDetails | dict | None = None


POS_ERROR_RESPONSES = {
    401: {"model": ApiErrorResponse, "description": "Missing or invalid bearer token"},
    403: {"model": ApiErrorResponse, "description": "Permission, ownership, module or tenant scope denied"},
    404: {"model": ApiErrorResponse, "description": "Shift, product, user or gym not found in this tenant"},
    409: {"model": ApiErrorResponse, "description": "Shift state conflict, insufficient stock or idempotency conflict"},
    422: {"model": ApiValidationErrorResponse, "description": "Invalid input"},
}
