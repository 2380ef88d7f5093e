"""전역 테스트 설정

역할:
- 테스트 환경 구성
- 공통 Fake 주입 (수동 시계, 가짜 sleep, 리스너)

금지:
- 실제 네트워크 호출
"""

import os
import sys
from pathlib import Path

import pytest


# 프로젝트 루트를 경로에 추가
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tests.fakes import FakeSleep, ManualScheduler, RecordingListener  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def test_env() -> None:
    """테스트 환경 변수 설정 (세션 전역)"""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["LOG_LEVEL"] = "INFO"


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()
