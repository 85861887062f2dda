"""Failures the client-side cart sees from its transport."""


class ServiceUnavailable(Exception):
    """The cart service is temporarily unreachable. Local state stays authoritative until it returns."""


class TransportError(Exception):
    """The cart service answered with an error other than unavailability."""

    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"{status_code}: {detail}")
