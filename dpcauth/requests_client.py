from typing import Any, Dict

import requests


class RequestsClient:
    """A `requests.Session` bound to a single plain HTTP service.

    Used as a context manager, the session and its connections are released
    when the block ends.
    """

    def __init__(self, base_url: str, **kwargs: Any) -> None:
        self.base_url = f"http://{base_url}"
        self.session = requests.Session()

        for arg, value in kwargs.items():
            if isinstance(value, dict):
                value = self.__deep_merge(value, getattr(self.session, arg))
            setattr(self.session, arg, value)

    def __enter__(self) -> "RequestsClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.session.close()

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self.session.get(self.base_url + url, **kwargs)

    @staticmethod
    def __deep_merge(source: Dict[Any, Any], destination: Any) -> Any:
        for key, value in source.items():
            if isinstance(value, dict):
                node = destination.setdefault(key, {})
                RequestsClient.__deep_merge(value, node)
            else:
                destination[key] = value
        return destination
