from storefront.schemas.auth import (
    EmailCodeRequest,
    EmailCodeConfirm,
    SmsCodeRequest,
    SmsCodeConfirm,
    OnboardRequest,
    LoginRequest,
    Tokens,
)
from storefront.schemas.store import StoreResponse, PublicStoreResponse, TemplateUpdate
