"""
Security Event Logging - structured JSON audit events for encryption failures

Events name the owning type and attribute involved. Key material, plaintext
and envelopes are never part of an event; anything that looks like a secret
in ``additional_data`` is redacted before it is written.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fieldcrypt.utils.logging_config import SERVICE_NAME, SERVICE_VERSION


class SecurityEventLogger:
    """
    Centralized security event logger that outputs structured JSON logs.
    """

    # Security event categories
    CRYPTO_EVENT = "cryptography"
    CONFIG_EVENT = "configuration"
    SYSTEM_EVENT = "system"

    # Event severity levels
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    SENSITIVE_KEYS = {
        'password', 'passwd', 'secret', 'key', 'plaintext',
        'ciphertext', 'envelope', 'value', 'authorization',
    }

    def __init__(self):
        self.logger = logging.getLogger('security_events')

    def _log_security_event(self,
                            event_type: str,
                            action: str,
                            severity: str = MEDIUM,
                            success: bool = True,
                            message: str = "",
                            additional_data: Optional[Dict[str, Any]] = None) -> None:
        """
        Log a structured security event.

        Args:
            event_type: Category of security event (CRYPTO_EVENT, CONFIG_EVENT, ...)
            action: Specific action being performed (decrypt, resolve_option, ...)
            severity: Event severity level (LOW, MEDIUM, HIGH, CRITICAL)
            success: Whether the action was successful
            message: Human-readable description of the event
            additional_data: Additional context-specific data
        """
        event = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'event_type': event_type,
            'action': action,
            'severity': severity,
            'success': success,
            'message': message,
            'service': SERVICE_NAME,
            'version': SERVICE_VERSION,
        }

        if additional_data:
            event['additional_data'] = self._sanitize_data(additional_data)

        self.logger.info(json.dumps(event, default=str))

    def _sanitize_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Remove or mask sensitive data before logging."""
        sanitized = {}
        for key, value in data.items():
            key_lower = key.lower()
            if any(sensitive in key_lower for sensitive in self.SENSITIVE_KEYS):
                sanitized[key] = '[REDACTED]'
            elif isinstance(value, dict):
                sanitized[key] = self._sanitize_data(value)
            elif isinstance(value, str) and len(value) > 500:
                sanitized[key] = value[:500] + '...[TRUNCATED]'
            else:
                sanitized[key] = value
        return sanitized

    # Cryptography Events
    def log_decryption_failure(self, owner: str, attribute: str, error_type: str) -> None:
        """Log an envelope that could not be opened."""
        self._log_security_event(
            event_type=self.CRYPTO_EVENT,
            action="decrypt",
            severity=self.HIGH,
            success=False,
            message=f"Decryption of {owner}.{attribute} failed",
            additional_data={
                'owner': owner,
                'attribute': attribute,
                'error_type': error_type,
            }
        )

    def log_option_resolution_failure(self, owner: str, attribute: str, option: str) -> None:
        """Log a dynamic option that raised or pointed at a missing operation."""
        self._log_security_event(
            event_type=self.CRYPTO_EVENT,
            action="resolve_option",
            severity=self.MEDIUM,
            success=False,
            message=f"Option '{option}' of {owner}.{attribute} could not be resolved",
            additional_data={
                'owner': owner,
                'attribute': attribute,
                'option_name': option,
            }
        )

    # Configuration Events
    def log_insecure_key_in_use(self, environment: str) -> None:
        """Log use of the published development key."""
        self._log_security_event(
            event_type=self.CONFIG_EVENT,
            action="insecure_key",
            severity=self.CRITICAL,
            success=True,
            message="The published development encryption key is in use",
            additional_data={'environment': environment}
        )

    # System Events
    def log_system_startup(self, version: str, config_details: Dict[str, Any] = None) -> None:
        """Log gateway construction."""
        self._log_security_event(
            event_type=self.SYSTEM_EVENT,
            action="startup",
            severity=self.LOW,
            success=True,
            message=f"fieldcrypt gateway {version} initialised",
            additional_data=config_details or {}
        )


security_logger = SecurityEventLogger()
