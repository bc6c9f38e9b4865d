from dataclasses import dataclass
from urllib.parse import parse_qsl, urlparse

ACCOUNT_USER = "user"
ACCOUNT_CLIENT = "client"
# Only used by callers whose identity provider has not answered yet.
ACCOUNT_UNKNOWN = "unknown"

ACCOUNT_TYPES = (ACCOUNT_USER, ACCOUNT_CLIENT)

_TYPE_PARAMS = ("type", "accountType")


@dataclass(frozen=True)
class AccountContext:
    account_type: str
    is_new_user: bool = False
    # Diagnostics only: which piece of evidence decided account_type.
    source_signal: str = "default"

    def to_dict(self) -> dict:
        return {
            "account_type": self.account_type,
            "is_new_user": self.is_new_user,
            "source_signal": self.source_signal,
        }


def resolve_account_context(source_url, referrer_url=None, *, user_domain: str, is_new_user: bool = False) -> AccountContext:
    """
    Decide which product a request belongs to. Strict priority, first hit wins:

      1. ?type=user / ?accountType=user
      2. host (or referrer) on the user-product domain
      3. "/user" in the path
      4. client
    """
    parsed = urlparse(source_url or "")
    host = (parsed.hostname or "").lower()
    user_domain = (user_domain or "").lower()

    query = parse_qsl(parsed.query, keep_blank_values=True)
    if any(k in _TYPE_PARAMS and v == ACCOUNT_USER for k, v in query):
        return AccountContext(ACCOUNT_USER, is_new_user, "query_parameter")

    if user_domain and user_domain in host:
        return AccountContext(ACCOUNT_USER, is_new_user, "host")
    if user_domain and referrer_url and user_domain in referrer_url.lower():
        return AccountContext(ACCOUNT_USER, is_new_user, "referrer")

    if "/user" in parsed.path:
        return AccountContext(ACCOUNT_USER, is_new_user, "path")

    return AccountContext(ACCOUNT_CLIENT, is_new_user, "default")


def resolve_oauth_account_type(oauth_state, user_metadata, *, user_domain: str) -> AccountContext:
    """
    Account type for a federated sign-in: an explicit type carried through the
    OAuth state, then what the identity provider already stores, then the same
    URL evidence as a password signup.
    """
    oauth_state = oauth_state or {}
    user_metadata = user_metadata or {}

    explicit = oauth_state.get("account_type")
    if explicit in ACCOUNT_TYPES:
        return AccountContext(explicit, True, "explicit")

    stored = user_metadata.get("account_type")
    if stored in ACCOUNT_TYPES:
        return AccountContext(stored, True, "metadata")

    return resolve_account_context(
        oauth_state.get("source_url"),
        oauth_state.get("referrer_url"),
        user_domain=user_domain,
        is_new_user=True,
    )
