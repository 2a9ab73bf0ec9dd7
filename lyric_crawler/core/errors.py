from typing import Optional


class CrawlerError(Exception):
    """Base de todos os erros do crawler."""


class ConfigError(CrawlerError, ValueError):
    pass


class FetchExhausted(CrawlerError):
    def __init__(self, url: str, attempts: int, last_error: BaseException):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"{url}: {attempts} tentativa(s) falharam ({last_error})")


class AmbiguousParseMode(CrawlerError):
    pass


class ExtractionError(CrawlerError):
    pass


class PersistFailure(CrawlerError):
    def __init__(self, path, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        super().__init__(f"falha ao gravar {path}: {cause}")


class TaskFailed(CrawlerError):
    def __init__(self, task_name: str, cause: BaseException):
        self.task_name = task_name
        self.cause = cause
        super().__init__(f"[{task_name}] {cause}")
