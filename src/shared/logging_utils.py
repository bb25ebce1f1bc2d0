"""
Colored logging utilities for the OAuth App middleware.

This module provides colored console logging with component identification,
timestamps, and message formatting so that every hop between the HTTP client,
the middleware and the OAuth App collaborator can be followed in the console.
"""

import logging
from datetime import datetime
from typing import Dict, Any, Optional
from enum import Enum

from colorama import Fore, Style, init

init(autoreset=True)  # Initialize colorama for Windows compatibility


class ComponentType(str, Enum):
    """Components taking part in a middleware request."""
    CLIENT = "CLIENT"
    MIDDLEWARE = "OAUTH-MIDDLEWARE"
    OAUTH_APP = "OAUTH-APP"
    SYSTEM = "SYSTEM"


class MessageType(str, Enum):
    """Message types for logging."""
    REQUEST = "REQUEST"
    RESPONSE = "RESPONSE"
    ERROR = "ERROR"
    INFO = "INFO"
    ROUTE_UNHANDLED = "ROUTE-UNHANDLED"
    APP_CALL = "APP-CALL"
    REDIRECT = "REDIRECT"


class OAuthLogger:
    """
    Colored logger for middleware message flows.

    Provides logging with color coding, timestamps, and structured message
    formatting to help follow requests through the middleware.
    """

    def __init__(self, component_name: str):
        """
        Initialize logger for a specific component.

        Args:
            component_name: Name of the component (CLIENT, OAUTH-MIDDLEWARE, etc.)
        """
        self.component_name = component_name.upper()
        self.colors = self._get_component_colors()

        # Set up Python logging
        self.logger = logging.getLogger(f"oauth.{component_name.lower()}")
        self.logger.setLevel(logging.INFO)

        # Remove existing handlers to avoid duplicates
        self.logger.handlers.clear()

        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)
        self.logger.addHandler(handler)
        self.logger.propagate = False

    def _get_component_colors(self) -> Dict[str, str]:
        """Get color scheme for different components and message types."""
        return {
            'CLIENT': Fore.BLUE + Style.BRIGHT,
            'OAUTH-MIDDLEWARE': Fore.GREEN + Style.BRIGHT,
            'OAUTH-APP': Fore.YELLOW + Style.BRIGHT,
            'SYSTEM': Fore.MAGENTA + Style.BRIGHT,
            'ERROR': Fore.RED + Style.BRIGHT,
            'SUCCESS': Fore.GREEN + Style.BRIGHT,
            'INFO': Fore.CYAN,
            'DEBUG': Fore.WHITE + Style.DIM,
            'HEADER': Fore.WHITE + Style.BRIGHT,
            'SEPARATOR': Fore.WHITE + Style.DIM,
            'RESET': Style.RESET_ALL
        }

    def _format_timestamp(self) -> str:
        """Format current timestamp for log messages."""
        return datetime.now().strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]

    def _sanitize_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Sanitize sensitive data for logging.

        Redacts secrets and truncates tokens, codes and states.
        """
        sanitized = {}
        for key, value in data.items():
            key_lower = key.lower()

            if any(sensitive in key_lower for sensitive in ['password', 'secret', 'key']):
                sanitized[key] = '[REDACTED]'
            elif any(token in key_lower for token in ['token', 'code', 'state']):
                if isinstance(value, str) and len(value) > 10:
                    sanitized[key] = f"{value[:10]}..."
                else:
                    sanitized[key] = value
            else:
                sanitized[key] = value

        return sanitized

    def log_oauth_message(self,
                          source: str,
                          destination: str,
                          message_type: str,
                          data: Dict[str, Any],
                          success: bool = True):
        """
        Log a message with color coding and formatting.

        Args:
            source: Source component name
            destination: Destination component name
            message_type: Type of message (REQUEST, RESPONSE, etc.)
            data: Message data dictionary
            success: Whether the operation was successful
        """
        timestamp = self._format_timestamp()
        source_color = self.colors.get(source.upper(), self.colors['INFO'])
        dest_color = self.colors.get(destination.upper(), self.colors['INFO'])

        if not success:
            msg_color = self.colors['ERROR']
        elif message_type in ['RESPONSE', 'SUCCESS']:
            msg_color = self.colors['SUCCESS']
        else:
            msg_color = self.colors['INFO']

        header = f"{self.colors['HEADER']}[{timestamp}] {source_color}{source}{self.colors['RESET']} → {dest_color}{destination}{self.colors['RESET']}"
        print(header)

        print(f"{msg_color}{message_type}:{self.colors['RESET']}")

        sanitized_data = self._sanitize_data(data)
        for key, value in sanitized_data.items():
            print(f"  {self.colors['INFO']}{key}:{self.colors['RESET']} {value}")

        print(f"{self.colors['SEPARATOR']}{'-' * 60}{self.colors['RESET']}")
        print()

    def log_app_call(self,
                     method: str,
                     details: Dict[str, Any],
                     success: bool = True):
        """
        Log a call made against the OAuth App collaborator.

        Args:
            method: Collaborator method name (create_token, check_token, etc.)
            details: Call arguments or result summary
            success: Whether the call succeeded
        """
        self.log_oauth_message(
            source=self.component_name,
            destination=ComponentType.OAUTH_APP.value,
            message_type=f"{MessageType.APP_CALL.value} {method}",
            data=details,
            success=success
        )

    def log_http_request(self,
                         method: str,
                         path: str,
                         params: Optional[Dict[str, Any]] = None,
                         headers: Optional[Dict[str, str]] = None):
        """
        Log HTTP request details.

        Args:
            method: HTTP method
            path: Request path
            params: Query parameters or body fields
            headers: Request headers (sensitive headers will be redacted)
        """
        request_data = {
            "method": method,
            "path": path
        }

        if params:
            request_data["parameters"] = self._sanitize_data(params)

        if headers:
            safe_headers = {}
            for key, value in headers.items():
                if key.lower() in ['authorization', 'cookie', 'x-api-key']:
                    safe_headers[key] = '[REDACTED]'
                else:
                    safe_headers[key] = value
            request_data["headers"] = safe_headers

        self.log_oauth_message(
            source=ComponentType.CLIENT.value,
            destination=self.component_name,
            message_type="HTTP-REQUEST",
            data=request_data
        )

    def log_http_response(self, method: str, path: str, status_code: int):
        """Log the status code returned for a request."""
        self.log_oauth_message(
            source=self.component_name,
            destination=ComponentType.CLIENT.value,
            message_type="RESPONSE",
            data={"method": method, "path": path, "status_code": status_code},
            success=status_code < 400
        )

    def log_error(self,
                  error_type: str,
                  message: str,
                  details: Optional[Dict[str, Any]] = None):
        """
        Log error messages with context.

        Args:
            error_type: Type of error
            message: Error message
            details: Additional error context
        """
        error_data = {
            "error_type": error_type,
            "message": message
        }

        if details:
            error_data.update(details)

        self.log_oauth_message(
            source=self.component_name,
            destination="ERROR-HANDLER",
            message_type="ERROR",
            data=error_data,
            success=False
        )

    def log_info(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Log informational messages.

        Args:
            message: Info message
            details: Additional context
        """
        print(f"{self.colors['INFO']}[{self._format_timestamp()}] {self.component_name}: {message}{self.colors['RESET']}")
        if details:
            for key, value in self._sanitize_data(details).items():
                print(f"  {key}: {value}")
        print()

    def log_startup(self, port: int, additional_info: Optional[Dict[str, Any]] = None):
        """
        Log component startup information.

        Args:
            port: Port number the component is running on
            additional_info: Additional startup information
        """
        print(f"{self.colors['SUCCESS']}🚀 {self.component_name} started on port {port}{self.colors['RESET']}")
        if additional_info:
            for key, value in additional_info.items():
                print(f"   {key}: {value}")
        print(f"{self.colors['SEPARATOR']}{'-' * 60}{self.colors['RESET']}")
        print()


def create_logger(component_name: str) -> OAuthLogger:
    """
    Factory function to create logger instances.

    Args:
        component_name: Name of the component

    Returns:
        OAuthLogger: Configured logger instance
    """
    return OAuthLogger(component_name)
