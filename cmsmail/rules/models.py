from pydantic import BaseModel


class ProjectRules(BaseModel):
    slug: str
    rules_version: str

class RangeRule(BaseModel):
    min: int
    max: int

class ContactsRules(BaseModel):
    recipient_name: RangeRule
    email_pattern: str

class SubscriptionRules(BaseModel):
    site_name: str
    base_url: str
    confirm_path: str = "/api/public/subscription/confirm"
    cancel_path: str = "/api/public/subscription/cancel"
    unsubscribe_path: str = "/api/public/subscription/unsubscribe"
    send_mail: bool = True

class CaptchaRules(BaseModel):
    min_operand: int
    max_operand: int
    ttl_seconds: int

class RateLimitWindow(BaseModel):
    window_seconds: int
    max_requests: int

class RateLimitRules(BaseModel):
    subscription: RateLimitWindow

class SecurityRules(BaseModel):
    admin_token_ttl_minutes: int
    erase_ticket_ttl_seconds: int

class OpsRules(BaseModel):
    data_dir_required: bool
    required_env: list[str]

class Rules(BaseModel):
    project: ProjectRules
    contacts: ContactsRules
    subscription: SubscriptionRules
    captcha: CaptchaRules
    rate_limits: RateLimitRules
    security: SecurityRules
    ops: OpsRules
