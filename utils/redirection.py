from dataclasses import dataclass

from utils.account_context import ACCOUNT_CLIENT, ACCOUNT_USER

SAME_ORIGIN = "same-origin"
CROSS_ORIGIN = "cross-origin"

FALLBACK_PATH = "/dashboard"


@dataclass(frozen=True)
class NavigationTarget:
    """
    Where to send the browser and how. Cross-origin targets need a full
    navigation; same-origin ones can be a history update without a reload.
    """
    url: str
    navigation: str

    @property
    def is_cross_origin(self) -> bool:
        return self.navigation == CROSS_ORIGIN

    def to_dict(self) -> dict:
        return {"url": self.url, "navigation": self.navigation}


def _user_target(user_domain: str, first_visit: bool) -> NavigationTarget:
    path = "/profile-completion" if first_visit else "/dashboard"
    return NavigationTarget(f"https://{user_domain}{path}", CROSS_ORIGIN)


def _client_target(client_domain: str, first_visit: bool) -> NavigationTarget:
    path = "/profile" if first_visit else "/dashboard"
    return NavigationTarget(f"https://{client_domain}{path}", CROSS_ORIGIN)


def resolve_destination(
    account_type,
    is_new_user: bool = False,
    is_google_auth: bool = False,
    current_host=None,
    *,
    user_domain: str,
    client_domain: str,
) -> NavigationTarget:
    # A federated sign-in does not guarantee profile fields, so it is routed
    # like a brand new account.
    first_visit = bool(is_new_user or is_google_auth)

    if account_type == ACCOUNT_USER:
        return _user_target(user_domain, first_visit)
    if account_type == ACCOUNT_CLIENT:
        return _client_target(client_domain, first_visit)

    host = (current_host or "").lower()
    if host and user_domain.lower() in host:
        return _user_target(user_domain, first_visit)
    if host and client_domain.lower() in host:
        return _client_target(client_domain, first_visit)

    return NavigationTarget(FALLBACK_PATH, SAME_ORIGIN)
