# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Delivery of single-use credential tokens.

Email delivery is an external collaborator of the auth service. This module
defines the interface the service talks to and a default implementation that
only writes a log record, which is what development and test deployments use.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class TokenPurpose(str, Enum):
    """What a delivered token can be used for."""

    EMAIL_VERIFICATION = "email_verification"
    PASSWORD_RESET = "password_reset"


@dataclass(frozen=True)
class TokenDelivery:
    """A token addressed to a user.

    Attributes:
        purpose: What the token unlocks.
        tenant_id: Tenant of the recipient.
        user_id: Recipient user ID.
        email: Recipient email address.
        first_name: Recipient first name, for the greeting.
        token: Raw single-use token. Never persisted.
    """

    purpose: TokenPurpose
    tenant_id: str
    user_id: str
    email: str
    first_name: str
    token: str


class AuthNotifier(ABC):
    """Sends verification and password reset tokens to users."""

    @abstractmethod
    async def send(self, delivery: TokenDelivery) -> None:
        """Deliver a token.

        Args:
            delivery: Token and recipient details.
        """
        ...


class LoggingNotifier(AuthNotifier):
    """Notifier that records deliveries in the log instead of sending mail."""

    def __init__(self) -> None:
        """Initialize the notifier."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    async def send(self, delivery: TokenDelivery) -> None:
        self.logger.info(
            "Token issued: purpose=%s, tenant=%s, user=%s",
            delivery.purpose.value,
            delivery.tenant_id,
            delivery.user_id,
        )
        self.logger.debug("Token for %s: %s", delivery.email, delivery.token)
