from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from sqlalchemy.orm import Session, sessionmaker

from datareader.config import Settings
from datareader.database import build_session_factory
from datareader.pipeline import IngestionPipeline


@pytest.fixture()
def temp_workspace(tmp_path: Path) -> Path:
    (tmp_path / "data").mkdir(parents=True, exist_ok=True)
    return tmp_path


@pytest.fixture()
def test_settings(temp_workspace: Path) -> Settings:
    return Settings(
        app_name="datareader",
        database_url=f"sqlite:///{temp_workspace / 'test.db'}",
        log_level="INFO",
        log_dir=str(temp_workspace / "logs"),
        batch_size=100,
        sample_interval=1000,
        schedule_hour_utc=2,
        schedule_minute_utc=0,
    )


@pytest.fixture()
def session_factory(test_settings: Settings) -> sessionmaker[Session]:
    return build_session_factory(test_settings.database_url)


@pytest.fixture()
def pipeline(test_settings: Settings, session_factory: sessionmaker[Session]) -> Generator[IngestionPipeline, None, None]:
    yield IngestionPipeline(test_settings, session_factory)


def person_line(index: int, status: str = "Activo", pep: str = "true", os_flag: str = "false") -> str:
    return f"Name{index}|Surname{index}|ID{index:08d}|{status}|2023-01-15|{pep}|{os_flag}"


@pytest.fixture()
def write_input(temp_workspace: Path) -> Callable[[list[str], str], Path]:
    def _write(lines: list[str], name: str = "people.txt") -> Path:
        path = temp_workspace / "data" / name
        with path.open("w", encoding="utf-8") as outfile:
            for line in lines:
                outfile.write(line)
                outfile.write("\n")
        return path

    return _write
