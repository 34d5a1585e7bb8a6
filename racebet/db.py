"""データベース接続モジュール

SQLAlchemyのエンジンとセッションを管理する。SQLAlchemyのURLを受け付け、
URLでないファイルパス（または ":memory:"）はSQLiteとして扱う。
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from racebet.models.base import Base


def get_engine(database: str) -> Engine:
    """データベースエンジンを作成する

    Args:
        database: SQLAlchemyのURL、SQLiteのファイルパス、またはエンジンの
            全セッションで共有するインメモリDBの ":memory:"

    Returns:
        SQLAlchemy Engineオブジェクト
    """
    if database == ":memory:" or database == "sqlite://":
        return create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    if "://" not in database:
        database = f"sqlite:///{database}"

    if database.startswith("sqlite:///"):
        # ファイルDBの場合、親ディレクトリを作成
        parent_dir = Path(database[len("sqlite:///"):]).parent
        parent_dir.mkdir(parents=True, exist_ok=True)
        return create_engine(database, connect_args={"check_same_thread": False})

    return create_engine(database, pool_pre_ping=True)


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """``engine`` に紐づくセッションファクトリを返す

    コミット後もオブジェクトを読み込んだままにするので、セッションを閉じた
    後でもHTTP層に渡せる。
    """
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def get_session(engine: Engine) -> Generator[Session, None, None]:
    """データベースセッションのコンテキストマネージャ

    正常終了時にコミットし、例外が発生した場合はロールバックする。

    Args:
        engine: SQLAlchemy Engineオブジェクト

    Yields:
        Sessionオブジェクト

    Example:
        with get_session(engine) as session:
            session.add(race)
            # 自動的にコミットされる
    """
    session = get_session_factory(engine)()

    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """``Base`` に定義された全テーブルを作成する

    既存のテーブルはそのままなので、何度呼んでもよい。

    Args:
        engine: SQLAlchemy Engineオブジェクト
    """
    Base.metadata.create_all(engine)
