# marketplace/domain/errors.py


class MarketplaceError(Exception):
    """Bazowy blad domeny - routery mapuja podklasy na kody HTTP."""


class NotFound(MarketplaceError):
    pass


class Expired(MarketplaceError):
    pass


class Unavailable(MarketplaceError):
    pass


class CrossVendor(MarketplaceError):
    pass


class IllegalTransition(MarketplaceError):
    pass


class Conflict(MarketplaceError):
    pass


class RateLimited(MarketplaceError):
    pass


class CheckoutBlocked(MarketplaceError):
    """Koszyk ma bledy blokujace - raport zawiera wszystkie bledy i ostrzezenia naraz."""

    def __init__(self, report):
        self.report = report
        super().__init__("; ".join(report.errors) or "Checkout blocked")
