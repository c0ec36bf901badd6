"""Email send payload, accepted in the camelCase shape clients already use."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SendEmailRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recipient_email: EmailStr = Field(..., alias="recipientEmail")
    recipient_name: str | None = Field(None, alias="recipientName", max_length=255)
    email_type: str = Field(..., alias="emailType")
    company_name: str = Field(..., alias="companyName", max_length=255)
    notification_token: str = Field(..., alias="notificationToken", max_length=64)
    rejection_reason: str | None = Field(None, alias="rejectionReason", max_length=1000)
