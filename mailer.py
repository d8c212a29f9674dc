from typing import Optional

import httpx

from constants import EMAILJS_PRIVATE_KEY, EMAILJS_PUBLIC_KEY, EMAILJS_SERVICE_ID, EMAILJS_TEMPLATE_ID, EMAILJS_URL
from logging_config import get_logger

logger = get_logger(__name__)


class EmailJSMailer:
    """Sends new-account credentials through the EmailJS REST API."""

    def __init__(
        self,
        service_id: Optional[str] = EMAILJS_SERVICE_ID,
        template_id: Optional[str] = EMAILJS_TEMPLATE_ID,
        public_key: Optional[str] = EMAILJS_PUBLIC_KEY,
        private_key: Optional[str] = EMAILJS_PRIVATE_KEY,
        url: str = EMAILJS_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.service_id = service_id
        self.template_id = template_id
        self.public_key = public_key
        self.private_key = private_key
        self.url = url
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.service_id and self.template_id)

    async def send_credentials(self, name: str, email: str, password: str) -> bool:
        """Email login details to a new user. Returns False instead of raising on delivery failure."""
        if not self.configured:
            logger.warning(f"EmailJS not configured, skipping credentials email to {email}")
            return False

        body = {
            "service_id": self.service_id,
            "template_id": self.template_id,
            "user_id": self.public_key,
            "accessToken": self.private_key,
            "template_params": {
                "to_name": name,
                "to_email": email,
                "password": password,
                "message": f"Welcome {name}! Your login email is {email} and password is {password}.",
            },
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.url, json=body)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"EmailJS rejected credentials email to {email}: {e.response.status_code} {e.response.text}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"EmailJS request failed for {email}: {e}", exc_info=True)
            return False

        logger.info(f"Credentials email sent to {email}")
        return True
