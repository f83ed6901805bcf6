"""
Zendesk API Client

Ticket source for the pipeline:
- Ticket comments (required) and ticket details (best-effort)
- Ticket content assembly for the prompt
- TicketContext construction from the fetched payload
"""
from typing import Any, Dict, Optional

import httpx

from ticket_intel.config import get_settings
from ticket_intel.errors import (
    ConfigurationInvalid,
    UpstreamAuthFailed,
    UpstreamNotFound,
    UpstreamRateLimitedOrServerError,
    UpstreamRequestFailed,
)
from ticket_intel.models.schemas import TicketContext, TicketData, TicketDetails
from ticket_intel.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


def normalize_domain(domain: str) -> str:
    """Strip protocol and trailing slash: https://acme.zendesk.com/ -> acme.zendesk.com"""
    domain = (domain or "").strip()
    for prefix in ("https://", "http://"):
        if domain.lower().startswith(prefix):
            domain = domain[len(prefix):]
            break
    return domain.rstrip("/")


class ZendeskClient:
    """
    Zendesk API integration with typed error mapping

    There are no retries: a rate-limited or failing request surfaces as
    UpstreamRateLimitedOrServerError and the agent decides whether to retry.
    """

    def __init__(
        self,
        domain: Optional[str] = None,
        email: Optional[str] = None,
        api_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.domain = normalize_domain(domain if domain is not None else settings.zendesk_domain)
        self.email = email if email is not None else settings.zendesk_email
        self.api_token = api_token if api_token is not None else settings.zendesk_api_token
        self.base_url = f"https://{self.domain}/api/v2"
        self.headers = {
            "Content-Type": "application/json"
        }
        self.timeout = settings.request_timeout
        self.transport = transport

    @property
    def auth(self) -> tuple:
        return (f"{self.email}/token", self.api_token)

    def check_credentials(self) -> None:
        """
        Raises:
            ConfigurationInvalid: If domain, email or API token is empty
        """
        missing = [
            name for name, value in (
                ("domain", self.domain),
                ("email", self.email),
                ("API token", self.api_token),
            )
            if not value
        ]
        if missing:
            raise ConfigurationInvalid(
                f"Zendesk {', '.join(missing)} required in settings",
                suggestions=["Set ZENDESK_DOMAIN, ZENDESK_EMAIL and ZENDESK_API_TOKEN"]
            )

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        ticket_id: Optional[str] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """
        Make HTTP request and map failures onto the error taxonomy

        Args:
            method: HTTP method
            endpoint: API endpoint relative to /api/v2
            ticket_id: Ticket the request is about (for messages)
            **kwargs: Additional arguments for httpx

        Returns:
            Response JSON

        Raises:
            UpstreamAuthFailed: 401
            UpstreamNotFound: 404
            UpstreamRateLimitedOrServerError: 429/5xx
            UpstreamRequestFailed: Other failures
        """
        url = f"{self.base_url}/{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    auth=self.auth,
                    headers=self.headers,
                    **kwargs
                )
        except httpx.HTTPError as e:
            logger.error(f"Request failed: {e}")
            raise UpstreamRequestFailed(f"Failed to fetch ticket data: {e}") from e

        status = response.status_code
        if status == 401:
            raise UpstreamAuthFailed(
                "Invalid Zendesk credentials. Please check your settings.",
                upstream_status=status,
                response_body=response.text
            )
        if status == 404:
            raise UpstreamNotFound(
                f"Ticket #{ticket_id} not found. Please check the ticket ID.",
                upstream_status=status,
                response_body=response.text
            )
        if status == 429 or status >= 500:
            raise UpstreamRateLimitedOrServerError(
                f"Zendesk API error: {status} {response.reason_phrase}",
                upstream_status=status,
                response_body=response.text
            )
        if not 200 <= status < 300:
            raise UpstreamRequestFailed(
                f"Zendesk API error: {status} {response.reason_phrase}",
                upstream_status=status,
                response_body=response.text
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamRequestFailed(f"Invalid JSON from Zendesk: {e}", upstream_status=status) from e

    async def fetch_ticket_comments(self, ticket_id: str) -> TicketData:
        """
        Fetch comments and ticket details for one ticket

        Args:
            ticket_id: Zendesk ticket ID

        Returns:
            TicketData; ``ticket`` is None when details could not be fetched
        """
        self.check_credentials()
        logger.info(f"Fetching comments for ticket {ticket_id}")
        comments_data = await self._make_request(
            "GET", f"tickets/{ticket_id}/comments.json", ticket_id=ticket_id
        )

        ticket: Optional[TicketDetails] = None
        try:
            ticket_data = await self._make_request(
                "GET", f"tickets/{ticket_id}.json", ticket_id=ticket_id
            )
            if ticket_data.get("ticket"):
                ticket = TicketDetails(**ticket_data["ticket"])
        except UpstreamRequestFailed as e:
            logger.warning(f"Ticket details unavailable for {ticket_id}: {e}")

        custom_fields: Dict[str, Any] = {}
        if ticket is not None:
            for field in ticket.custom_fields:
                if field.get("value"):
                    custom_fields[str(field.get("id"))] = field["value"]

        comments = comments_data.get("comments") or []
        logger.info(f"Fetched {len(comments)} comments for ticket {ticket_id}")

        return TicketData(
            comments=comments,
            ticket=ticket,
            custom_fields=custom_fields
        )


def assemble_ticket_content(ticket_data: TicketData) -> str:
    """
    Build the ticket text sent to the model

    Subject, the initial description (first comment), then every later
    public comment that was not created by a trigger.

    Args:
        ticket_data: Fetched ticket payload

    Returns:
        Assembled text (empty when there is nothing to include)
    """
    content = ""

    if ticket_data.ticket and ticket_data.ticket.subject:
        content += f"Ticket Subject: {ticket_data.ticket.subject}\n\n"

    if ticket_data.comments:
        first = ticket_data.comments[0]
        content += f"Initial Description: {first.body}\n\n"

        customer_comments = [
            comment for comment in ticket_data.comments[1:]
            if comment.public and not comment.is_automated
        ]

        if customer_comments:
            content += "Additional Customer Comments:\n"
            for comment in customer_comments:
                content += f"---\n{comment.body}\n"

    return content


def build_ticket_context(ticket_id: str, ticket_data: TicketData) -> TicketContext:
    """
    Combine fetched ticket data into a TicketContext

    Args:
        ticket_id: Ticket identifier
        ticket_data: Fetched ticket payload

    Returns:
        Immutable TicketContext
    """
    ticket = ticket_data.ticket
    return TicketContext(
        ticket_id=str(ticket_id),
        subject=(ticket.subject if ticket else None) or "",
        raw_content=assemble_ticket_content(ticket_data),
        tags=list(ticket.tags) if ticket else [],
        created_at=ticket.created_at if ticket else None,
        priority=ticket.priority if ticket else None,
        custom_fields=dict(ticket_data.custom_fields)
    )
