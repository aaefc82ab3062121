"""
Smoke tests for the end-to-end demo script.
"""

import importlib.util
import os

import pytest

DEMO_PATH = os.path.join(os.path.dirname(__file__), '..', 'demo_e2e.py')


@pytest.fixture(scope="module")
def demo():
    spec = importlib.util.spec_from_file_location("demo_e2e", DEMO_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestDemo:
    """Each demo section reports success."""
    
    def test_analysis(self, demo, capsys):
        assert demo.demo_analysis() is True
        out = capsys.readouterr().out
        assert "deep:" in out
        assert "awake:" in out
    
    def test_configuration(self, demo):
        assert demo.demo_configuration() is True
    
    def test_statistics(self, demo):
        assert demo.demo_statistics() is True
    
    def test_stale_recovery(self, demo):
        assert demo.demo_stale_recovery() is True
    
    @pytest.mark.slow
    def test_all_demos(self, demo, tmp_path):
        assert demo.run_all_demos(str(tmp_path)) is True
