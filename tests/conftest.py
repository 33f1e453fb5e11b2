"""Pytest configuration and fixtures."""

import os

# catalog.db 가 import 시점에 엔진을 만들기 때문에 설정보다 먼저 지정
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from catalog.models import CatalogBase


# 테스트용 메모리 SQLite 엔진
# 파이프라인은 태스크마다 세션을 새로 열기 때문에 StaticPool 로 같은 메모리 DB 를 공유
TEST_DATABASE_URL = "sqlite://"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False  # 테스트 로그 줄이기
)

TestSessionLocal = sessionmaker(
    bind=test_engine,
    autoflush=False,
    expire_on_commit=False,
)

FIXED_NOW = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)


def _patch_jsonb_to_json(base):
    """
    SQLite에서 JSONB를 JSON으로 변경하여 컴파일 오류 방지.
    테스트용으로만 사용.
    """
    from sqlalchemy.dialects.postgresql import JSONB

    for table in base.metadata.sorted_tables:
        for column in table.columns:
            if isinstance(column.type, JSONB):
                # JSONB → JSON으로 변경 (SQLite 호환)
                column.type = JSON()


@pytest.fixture(scope="function")
def session_factory():
    """
    테스트용 세션 팩토리 fixture.
    각 테스트마다 새로운 메모리 DB 생성.
    """
    # JSONB → JSON 패치 (SQLite 호환)
    _patch_jsonb_to_json(CatalogBase)
    CatalogBase.metadata.create_all(bind=test_engine)
    try:
        yield TestSessionLocal
    finally:
        # 모든 테이블 삭제
        CatalogBase.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def test_session(session_factory) -> Session:
    """테스트용 데이터베이스 세션 fixture."""
    session = session_factory()
    try:
        yield session
        session.commit()  # 테스트 성공 시 commit
    except Exception:
        session.rollback()  # 실패 시 rollback
        raise
    finally:
        session.close()


@pytest.fixture
def fixed_clock():
    """항상 같은 시각을 돌려주는 clock"""
    return lambda: FIXED_NOW


# 테스트 마커 정의
def pytest_configure(config):
    """Pytest 마커 등록."""
    config.addinivalue_line("markers", "unit: 단위 테스트 (DB 불필요)")
    config.addinivalue_line("markers", "integration: 통합 테스트 (메모리 SQLite)")
    config.addinivalue_line("markers", "slow: 느린 테스트 (> 1분)")
