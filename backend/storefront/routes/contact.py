# Overview: Public contact form; forwards the message to the business inbox and sends an auto-reply.

from flask import Blueprint, current_app, request

from ..decorators import contact_rate_limit
from ..errors import ApiError
from ..responses import failure, from_error, success
from ..services import email_service, outbox_service
from ..validation import validate_contact


contact_bp = Blueprint("contact", __name__, url_prefix="/api/contact")


@contact_bp.post("")
@contact_rate_limit
def contact_route():
    try:
        data = validate_contact(request.get_json(silent=True))

        business_subject, business_body = email_service.contact_business_email(**data)
        reply_subject, reply_body = email_service.contact_auto_reply_email(data["name"])
        outbox_service.publish([
            {"kind": email_service.KIND_CONTACT, "recipient": current_app.config["CONTACT_EMAIL"],
             "subject": business_subject, "body": business_body, "reply_to": data["email"]},
            {"kind": email_service.KIND_CONTACT_REPLY, "recipient": data["email"],
             "subject": reply_subject, "body": reply_body},
        ])
        return success("Thank you for your message. We'll get back to you soon!")

    except ApiError as e:
        return from_error(e)
    except Exception:
        current_app.logger.exception("Failed to process contact form")
        return failure("Internal server error", 500)
