from enum import Enum


class AgeGroup(str, Enum):
    ADULT = "Adult"
    CHILD = "Child"

    def __str__(self):
        return self.value


class QuoteSource(str, Enum):
    REMOTE_API = "remote_api"
    MOCK = "mock"

    def __str__(self):
        return self.value


class VendorOutcome(str, Enum):
    SUCCESS = "success"
    HTTP_ERROR = "http_error"
    TIMEOUT = "timeout"
    TRANSPORT_ERROR = "transport_error"

    def __str__(self):
        return self.value
