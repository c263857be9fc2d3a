"""Integration tests that exercise the example Django app entrypoint."""

import os
import subprocess
import sys
from pathlib import Path

EXAMPLES_DIR = Path(__file__).resolve().parents[2] / "examples"
REPO_ROOT = EXAMPLES_DIR.parent


def _run_example_manage(*args: str, **extra_env: str) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    env["DJANGO_SETTINGS_MODULE"] = "settings"
    env["PYTHONPATH"] = os.pathsep.join([str(REPO_ROOT / "src"), str(REPO_ROOT)])
    env.update(extra_env)
    return subprocess.run(
        [sys.executable, "manage.py", *args],
        cwd=EXAMPLES_DIR,
        env=env,
        capture_output=True,
        text=True,
        check=False,
    )


def test_example_app_django_check_passes() -> None:
    result = _run_example_manage("check")
    assert result.returncode == 0, result.stderr


def test_example_app_mounts_settlement_endpoints() -> None:
    result = _run_example_manage(
        "shell",
        "-c",
        (
            "from django.urls import reverse; "
            "print(reverse('eventpass:create-order')); "
            "print(reverse('eventpass:verify-payment'))"
        ),
    )
    assert result.returncode == 0, result.stderr
    assert "/payments/create-order/" in result.stdout
    assert "/payments/verify-payment/" in result.stdout


def test_example_app_reads_gateway_keys_from_environment() -> None:
    result = _run_example_manage(
        "shell",
        "-c",
        "from django_eventpass.settings import get_config; print(get_config().gateway.key_id)",
        RAZORPAY_KEY_ID="rzp_test_from_env",
    )
    assert result.returncode == 0, result.stderr
    assert "rzp_test_from_env" in result.stdout
