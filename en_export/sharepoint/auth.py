"""
Claims-based authentication against SharePoint Online.

The handshake is strictly linear and each step feeds the next:
1. Request a security token from the identity provider (WS-Trust)
2. Exchange the token for the tenant's session cookies
3. Request a form digest from the site using those cookies

The resulting AuthSession authorizes a single write and is never
persisted. A failure at any step raises AuthError and ends the attempt.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape

import httpx

from en_export.config.models import SharePointConfig

logger = logging.getLogger(__name__)

NS = {
    "s": "http://www.w3.org/2003/05/soap-envelope",
    "wst": "http://schemas.xmlsoap.org/ws/2005/02/trust",
    "wsse": "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd",
    "d": "http://schemas.microsoft.com/ado/2007/08/dataservices",
}

SIGN_IN_PATH = "/_forms/default.aspx?wa=wsignin1.0"
CONTEXT_INFO_PATH = "/_api/contextinfo"

# Set-Cookie entry at this position is not part of the auth session
IGNORED_COOKIE_INDEX = 2


class AuthError(Exception):
    """Raised when any step of the SharePoint handshake fails."""
    pass


@dataclass(frozen=True)
class SecurityTokenRequest:
    """WS-Trust 1.2 RequestSecurityToken envelope for a username/password pair."""
    username: str
    password: str
    realm: str
    endpoint: str

    def to_xml(self) -> str:
        username = escape(self.username)
        password = escape(self.password)
        realm = escape(self.realm)
        endpoint = escape(self.endpoint)
        return (
            '<s:Envelope xmlns:s="http://www.w3.org/2003/05/soap-envelope" '
            'xmlns:a="http://www.w3.org/2005/08/addressing" '
            'xmlns:u="http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-utility-1.0.xsd">'
            "<s:Header>"
            '<a:Action s:mustUnderstand="1">http://schemas.xmlsoap.org/ws/2005/02/trust/RST/Issue</a:Action>'
            "<a:ReplyTo><a:Address>http://www.w3.org/2005/08/addressing/anonymous</a:Address></a:ReplyTo>"
            f'<a:To s:mustUnderstand="1">{endpoint}</a:To>'
            '<o:Security s:mustUnderstand="1" '
            'xmlns:o="http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd">'
            "<o:UsernameToken>"
            f"<o:Username>{username}</o:Username>"
            f"<o:Password>{password}</o:Password>"
            "</o:UsernameToken>"
            "</o:Security>"
            "</s:Header>"
            "<s:Body>"
            '<t:RequestSecurityToken xmlns:t="http://schemas.xmlsoap.org/ws/2005/02/trust">'
            '<wsp:AppliesTo xmlns:wsp="http://schemas.xmlsoap.org/ws/2004/09/policy">'
            f"<a:EndpointReference><a:Address>{realm}</a:Address></a:EndpointReference>"
            "</wsp:AppliesTo>"
            "<t:KeyType>http://schemas.xmlsoap.org/ws/2005/05/identity/NoProofKey</t:KeyType>"
            "<t:RequestType>http://schemas.xmlsoap.org/ws/2005/02/trust/Issue</t:RequestType>"
            "<t:TokenType>urn:oasis:names:tc:SAML:1.0:assertion</t:TokenType>"
            "</t:RequestSecurityToken>"
            "</s:Body>"
            "</s:Envelope>"
        )


@dataclass(frozen=True)
class AuthSession:
    """Session cookies and form digest authorizing one write."""
    cookies: Tuple[str, str]
    digest: str

    def cookie_header(self) -> str:
        return ";".join(self.cookies)


def _parse_xml(content: bytes, step: str) -> ET.Element:
    try:
        return ET.fromstring(content)
    except ET.ParseError as e:
        raise AuthError(f"Authentication error: {step} response is not valid XML: {e}") from e


def _post(client: httpx.Client, url: str, step: str, **kwargs) -> httpx.Response:
    try:
        response = client.post(url, **kwargs)
    except httpx.HTTPError as e:
        raise AuthError(f"Authentication error: {step} request failed: {e}") from e
    return response


def request_security_token(client: httpx.Client, config: SharePointConfig) -> str:
    """
    Obtain a security token from the identity provider.

    Args:
        client: HTTP client
        config: SharePointConfig with credentials and token endpoint

    Returns:
        Text of the BinarySecurityToken element

    Raises:
        AuthError: If the call fails or the response holds no token
    """
    envelope = SecurityTokenRequest(
        username=config.username,
        password=config.password,
        realm=config.realm,
        endpoint=config.token_endpoint,
    )
    response = _post(
        client,
        config.token_endpoint,
        "security token",
        content=envelope.to_xml().encode("utf-8"),
        headers={"Content-Type": "application/soap+xml; charset=utf-8"},
    )

    root = _parse_xml(response.content, "security token")
    token = root.find(".//wst:RequestedSecurityToken/wsse:BinarySecurityToken", NS)
    if token is None or not (token.text or "").strip():
        reason = root.findtext(".//s:Fault/s:Reason/s:Text", default="", namespaces=NS)
        detail = f": {reason}" if reason else ""
        raise AuthError(
            f"Authentication error: no security token in response "
            f"(HTTP {response.status_code}){detail}"
        )

    logger.debug("Received security token")
    return token.text.strip()


def raw_header_text(response: httpx.Response) -> str:
    """Render response headers as raw `Name: value` lines."""
    return "\r\n".join(f"{name}: {value}" for name, value in response.headers.multi_items())


def parse_set_cookie_headers(raw_headers: str) -> List[str]:
    """
    Extract the session cookies from raw response header text.

    Each `Set-Cookie` line contributes its `name=value` part. The entry
    at index 2 is dropped and the first two remaining entries are
    returned in their original order.

    Args:
        raw_headers: Header block, one `Name: value` per line

    Returns:
        Up to two cookie strings
    """
    cookies = []
    for line in raw_headers.splitlines():
        name, sep, value = line.partition(":")
        if not sep or name.strip().lower() != "set-cookie":
            continue
        cookie = value.split(";", 1)[0].strip()
        if cookie:
            cookies.append(cookie)

    kept = [c for index, c in enumerate(cookies) if index != IGNORED_COOKIE_INDEX]
    return kept[:2]


def request_auth_cookies(client: httpx.Client, tenant_url: str, token: str) -> Tuple[str, str]:
    """
    Exchange a security token for the tenant's session cookies.

    Args:
        client: HTTP client (redirects must not be followed)
        tenant_url: Tenant root URL
        token: Security token from request_security_token

    Returns:
        The two session cookies in the order the server sent them

    Raises:
        AuthError: If the call fails or fewer than two cookies are returned
    """
    response = _post(
        client,
        tenant_url.rstrip("/") + SIGN_IN_PATH,
        "sign-in",
        content=token.encode("utf-8"),
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        follow_redirects=False,
    )

    cookies = parse_set_cookie_headers(raw_header_text(response))
    if len(cookies) < 2:
        raise AuthError(
            f"Authentication error: sign-in returned {len(cookies)} usable cookie(s) "
            f"(HTTP {response.status_code}), expected 2"
        )

    logger.debug("Received session cookies")
    return cookies[0], cookies[1]


def request_form_digest(client: httpx.Client, site_url: str, cookies: Tuple[str, str]) -> str:
    """
    Request a form digest for the site.

    Args:
        client: HTTP client
        site_url: Site URL
        cookies: Session cookies from request_auth_cookies

    Returns:
        FormDigestValue text

    Raises:
        AuthError: If the call fails or the response holds no digest
    """
    response = _post(
        client,
        site_url.rstrip("/") + CONTEXT_INFO_PATH,
        "context info",
        content=b"",
        headers={"Cookie": ";".join(cookies)},
    )

    if response.is_error:
        raise AuthError(f"Authentication error: context info returned HTTP {response.status_code}")

    root = _parse_xml(response.content, "context info")
    digest = root.findtext(".//d:FormDigestValue", namespaces=NS)
    if not digest:
        raise AuthError("Authentication error: no form digest in context info response")

    logger.debug("Received form digest")
    return digest


def build_sharepoint_client(config: SharePointConfig) -> httpx.Client:
    return httpx.Client(timeout=config.timeout, follow_redirects=False)


def authenticate(config: SharePointConfig, client: Optional[httpx.Client] = None) -> AuthSession:
    """
    Run the full handshake and return a single-use session.

    Args:
        config: SharePointConfig with credentials and URLs
        client: Optional HTTP client (a new one is created and closed otherwise)

    Returns:
        AuthSession with both cookies and the form digest

    Raises:
        AuthError: If any step fails
    """
    owns_client = client is None
    if owns_client:
        client = build_sharepoint_client(config)

    try:
        logger.info(f"Authenticating to SharePoint as {config.username}")
        token = request_security_token(client, config)
        cookies = request_auth_cookies(client, config.tenant_url, token)
        digest = request_form_digest(client, config.site_url, cookies)
    finally:
        if owns_client:
            client.close()

    return AuthSession(cookies=cookies, digest=digest)
