from estate_market.email_notify.email_service import email_service
from estate_market.fintechs.stripe_checkout import stripe_client
from estate_market.fire_and_forget.notifications import notifier

from .cloudinary_setup import cloudinary_client


def get_payment_gateway():
    return stripe_client


def get_image_host():
    return cloudinary_client


def get_mailer():
    return email_service


def get_notifier():
    return notifier
