"""Process-wide mobile-money provider.

Handlers never construct a provider themselves; they ask for the active one.
Until a real Wave or Orange Money adapter is installed with set_provider(),
the sandbox provider answers every payment session and status check.
"""

from payments.provider.fake_adapter import FakeMobileMoneyProvider
from payments.provider.port import MobileMoneyProvider

_current_provider: MobileMoneyProvider | None = None


def get_provider() -> MobileMoneyProvider:
    """The installed provider, creating the sandbox one on first use."""
    global _current_provider
    if _current_provider is None:
        _current_provider = FakeMobileMoneyProvider()
    return _current_provider


def set_provider(provider: MobileMoneyProvider) -> None:
    global _current_provider
    _current_provider = provider


def reset_provider() -> None:
    """Drop the installed provider; the next lookup starts a fresh sandbox."""
    global _current_provider
    _current_provider = None
