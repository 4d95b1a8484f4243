from __future__ import annotations

from dataclasses import asdict, dataclass, fields
import sqlite3

from .. import immediate_tx
from ...constants import DEFAULT_SETTINGS


class DomainError(Exception):
    pass


@dataclass
class AppSettings:
    store_name: str
    tagline: str | None
    store_address: str | None
    store_phone: str | None
    owner_name: str | None
    logo_url: str | None = None
    theme: str = "slate"

    @classmethod
    def defaults(cls) -> "AppSettings":
        return cls(**DEFAULT_SETTINGS)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        known = {f.name for f in fields(cls)}
        merged = {**DEFAULT_SETTINGS, **{k: v for k, v in data.items() if k in known}}
        return cls(**merged)


class SettingsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    def get(self) -> AppSettings:
        r = self.conn.execute(
            "SELECT store_name, tagline, store_address, store_phone, owner_name, logo_url, theme "
            "FROM app_settings WHERE settings_id=1"
        ).fetchone()
        return AppSettings(**dict(r)) if r else AppSettings.defaults()

    def save(self, settings: AppSettings) -> None:
        if not settings.store_name or not settings.store_name.strip():
            raise DomainError("Store name cannot be empty.")
        with immediate_tx(self.conn):
            self.conn.execute(
                """
                INSERT INTO app_settings(settings_id, store_name, tagline, store_address,
                                         store_phone, owner_name, logo_url, theme)
                VALUES (1, :store_name, :tagline, :store_address,
                        :store_phone, :owner_name, :logo_url, :theme)
                ON CONFLICT(settings_id) DO UPDATE SET
                    store_name=excluded.store_name,
                    tagline=excluded.tagline,
                    store_address=excluded.store_address,
                    store_phone=excluded.store_phone,
                    owner_name=excluded.owner_name,
                    logo_url=excluded.logo_url,
                    theme=excluded.theme
                """,
                settings.to_dict(),
            )
