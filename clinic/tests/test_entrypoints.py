import os
import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]


def run_fresh(code):
    env = {**os.environ, 'DJANGO_SETTINGS_MODULE': 'smartclinic.settings'}
    return subprocess.run([sys.executable, '-c', code], cwd=ROOT, env=env, capture_output=True, text=True, timeout=120)


@pytest.mark.parametrize('module', [
    'clinic.exceptions',
    'clinic.services.notifications',
    'clinic.management.commands.send_reminders',
    'clinic.authentication',
])
def test_module_imports_in_a_fresh_interpreter(module):
    # each module imported first, before anything touches rest_framework.views
    proc = run_fresh(f"import django; django.setup(); import {module}; import rest_framework.views")
    assert proc.returncode == 0, proc.stderr


def test_exception_handler_setting_resolves():
    proc = run_fresh(
        "import django; django.setup()\n"
        "from rest_framework.settings import api_settings\n"
        "from clinic.handlers import api_exception_handler\n"
        "assert api_settings.EXCEPTION_HANDLER is api_exception_handler"
    )
    assert proc.returncode == 0, proc.stderr
