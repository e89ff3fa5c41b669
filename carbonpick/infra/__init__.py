from carbonpick.infra.http import HttpClient, HttpError, Response

__all__ = ["HttpClient", "HttpError", "Response"]
