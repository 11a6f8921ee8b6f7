from typing import Annotated
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_DB_PATH = ".data/review.sqlite3"
SQLITE_MEMORY_PATH = ":memory:"
_STORE_BACKENDS = frozenset({"sqlite", "memory"})


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    環境変数から読み込まれるアプリ設定クラス。
    - environment: 実行環境（development/staging/production など）
    - review_store_backend: 復習アイテムの保存先（sqlite / memory）
    - review_timezone: 「今日」「日付ごとの予定」を判定するタイムゾーン
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level / ルートロガーのログレベル",
    )

    # --- 復習アイテムの永続化 ---
    review_store_backend: str = Field(
        default="sqlite",
        description="Review item store backend (sqlite|memory) / 復習アイテムの保存先",
    )
    review_db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="Path to review SQLite database / 復習用SQLite DBパス",
    )

    # --- 復習セッション ---
    review_max_today: int = Field(
        default=20,
        ge=1,
        description="Max items to return for today's review / 本日の最大出題数",
    )
    review_seed_limit: int = Field(
        default=10,
        ge=0,
        description="Max items created from search history / 検索履歴から作成する最大件数",
    )
    review_default_level: str = Field(
        default="middle",
        description="Educational level used when none is given / 既定の学習レベル",
    )
    review_timezone: str = Field(
        default="UTC",
        description="IANA timezone for calendar-day grouping / 日付判定に使うタイムゾーン",
    )

    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description=(
            "Comma separated CORS origins; empty allows any origin without credentials / "
            "CORS 許可オリジン（カンマ区切り）"
        ),
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("review_store_backend", mode="before")
    @classmethod
    def _normalise_store_backend(cls, raw: object) -> object:
        """Lower-case the backend name and reject unknown stores."""

        if not isinstance(raw, str):
            return raw
        backend = raw.strip().lower()
        if backend not in _STORE_BACKENDS:
            raise ValueError(
                f"review_store_backend must be one of {sorted(_STORE_BACKENDS)}, got {raw!r}"
            )
        return backend

    @model_validator(mode="after")
    def _route_sqlite_memory_path(self) -> "Settings":
        """Use the in-memory store when the SQLite path is `:memory:`.

        SQLite の `:memory:` は接続ごとに空の DB になるため、操作単位で接続する
        SQLiteReviewStore では使えない。プロセス内ストアに切り替える。
        """

        if self.review_store_backend == "sqlite" and self.review_db_path.strip() == SQLITE_MEMORY_PATH:
            self.review_store_backend = "memory"
        return self

    @field_validator("review_timezone", mode="after")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        """存在しない IANA タイムゾーン名は起動時に弾く。"""

        name = value.strip() or "UTC"
        try:
            ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"unknown review_timezone: {value!r}") from exc
        return name

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _normalise_allowed_cors_origins(
        cls, raw_origins: object
    ) -> tuple[str, ...] | object:  # pragma: no cover - pydantic handles typing
        """Normalise CORS origins to a trimmed, deduplicated tuple.

        空白や重複、末尾スラッシュの揺れを取り除いたうえで CORSMiddleware に渡す。
        """

        if raw_origins is None:
            candidates: list[str] = []
        elif isinstance(raw_origins, str):
            candidates = raw_origins.split(",")
        else:
            try:
                candidates = list(raw_origins)
            except TypeError:
                return raw_origins

        normalised: list[str] = []
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, str):
                continue
            trimmed = candidate.strip().rstrip("/")
            if not trimmed or trimmed in seen:
                continue
            seen.add(trimmed)
            normalised.append(trimmed)

        return tuple(normalised)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.review_timezone)


settings = Settings()
