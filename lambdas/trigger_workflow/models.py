# lambdas/trigger_workflow/models.py
"""
Plain-dataclass models and the settings class for the workflow trigger.
"""
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from typing import Dict, List, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when the GitHub dispatch settings are incomplete."""
    pass


class AppSettings(BaseSettings):
    """
    Manages env vars using Pydantic BaseSettings.
    A .env file is read as well, which is handy for local runs.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    github_token: str = Field("", alias='GITHUB_TOKEN')
    github_owner: str = Field("", alias='GITHUB_OWNER')
    github_repo: str = Field("", alias='GITHUB_REPO')
    github_api_url: str = Field("https://api.github.com", alias='GITHUB_API_URL')
    aws_region: str = Field("ap-northeast-1", alias='AWS_REGION')

    dispatch_event_type: str = Field("error-detected", alias='DISPATCH_EVENT_TYPE')
    dispatch_timeout_seconds: float = Field(10.0, alias='DISPATCH_TIMEOUT_SECONDS')
    dispatch_max_workers: int = Field(4, alias='DISPATCH_MAX_WORKERS', ge=1)
    deadline_margin_ms: int = Field(3000, alias='DEADLINE_MARGIN_MS', ge=0)

    @property
    def dispatch_url(self) -> str:
        return f"{self.github_api_url.rstrip('/')}/repos/{self.github_owner}/{self.github_repo}/dispatches"

    def missing_dispatch_settings(self) -> List[str]:
        """Names of the env vars that must be set before anything can be dispatched."""
        required = {
            'GITHUB_TOKEN': self.github_token,
            'GITHUB_OWNER': self.github_owner,
            'GITHUB_REPO': self.github_repo,
        }
        return [name for name, value in required.items() if not value]


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


# Data models
@dataclass(frozen=True)
class LogBatch:
    """
    One decoded CloudWatch Logs delivery.
    source_id is the log group and stream_id the log stream.
    """
    source_id: str
    stream_id: str
    records: Tuple[str, ...]
    message_type: str = "DATA_MESSAGE"
    owner: Optional[str] = None
    subscription_filters: Tuple[str, ...] = ()

    @property
    def is_control_message(self) -> bool:
        return self.message_type == "CONTROL_MESSAGE"


@dataclass(frozen=True)
class ErrorDetail:
    kind: str
    message: str
    trace: Optional[str] = None


@dataclass(frozen=True)
class ParsedEvent:
    """A structured log line. Only severity is guaranteed to be present."""
    severity: str
    timestamp: Optional[str] = None
    context_label: Optional[str] = None
    error: Optional[ErrorDetail] = None


@dataclass(frozen=True)
class ErrorDispatchPayload:
    error_message: str
    error_stack: str
    error_kind: str
    timestamp: str
    source_id: str
    stream_id: str
    context_label: str

    def to_client_payload(self) -> Dict[str, str]:
        """Field names as the triggered workflow reads them from client_payload."""
        return {
            "error_message": self.error_message,
            "error_stack": self.error_stack,
            "error_type": self.error_kind,
            "timestamp": self.timestamp,
            "log_group": self.source_id,
            "log_stream": self.stream_id,
            "context": self.context_label,
        }


class DispatchOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    NOT_ATTEMPTED = "not_attempted"


@dataclass
class DispatchResult:
    payload: ErrorDispatchPayload
    outcome: DispatchOutcome
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is DispatchOutcome.SUCCESS

    @classmethod
    def success(cls, payload: ErrorDispatchPayload) -> "DispatchResult":
        return cls(payload=payload, outcome=DispatchOutcome.SUCCESS)

    @classmethod
    def failure(cls, payload: ErrorDispatchPayload, reason: str) -> "DispatchResult":
        return cls(payload=payload, outcome=DispatchOutcome.FAILURE, reason=reason)

    @classmethod
    def not_attempted(cls, payload: ErrorDispatchPayload, reason: str) -> "DispatchResult":
        return cls(payload=payload, outcome=DispatchOutcome.NOT_ATTEMPTED, reason=reason)


class PipelineStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FATAL = "fatal"


@dataclass
class InvocationOutcome:
    """
    Final state of one invocation, as produced by TriggerPipeline.run().
    `dropped` counts eligible events that never became a payload.
    """
    status: PipelineStatus
    batch: Optional[LogBatch] = None
    results: List[DispatchResult] = field(default_factory=list)
    dropped: int = 0
    error: Optional[Exception] = None

    @property
    def succeeded(self) -> List[DispatchResult]:
        return [r for r in self.results if r.ok]

    @property
    def unsuccessful(self) -> List[DispatchResult]:
        return [r for r in self.results if not r.ok]

    @property
    def first_failure(self) -> Optional[DispatchResult]:
        # Real failures take precedence over payloads skipped at the deadline.
        for result in self.results:
            if result.outcome is DispatchOutcome.FAILURE:
                return result
        unsuccessful = self.unsuccessful
        return unsuccessful[0] if unsuccessful else None

    def summary(self) -> Dict[str, object]:
        return {
            "status": self.status.value,
            "log_group": self.batch.source_id if self.batch else None,
            "log_stream": self.batch.stream_id if self.batch else None,
            "records": len(self.batch.records) if self.batch else 0,
            "dispatched": len(self.succeeded),
            "failed": sum(1 for r in self.results if r.outcome is DispatchOutcome.FAILURE),
            "not_attempted": sum(1 for r in self.results if r.outcome is DispatchOutcome.NOT_ATTEMPTED),
            "dropped": self.dropped,
        }
