import logging

import pytest

from sectionorder import main as main_module
from sectionorder.errors import ConfigError


def test_parse_args_defaults():
    args = main_module.parse_args(['--section', '12'])

    assert args.section == '12'
    assert args.api_url is None
    assert args.quiet_period is None
    assert args.hierarchy_mode is None
    assert args.verbose is False


def test_parse_args_rejects_unknown_mode():
    with pytest.raises(SystemExit):
        main_module.parse_args(['--section', '1', '--hierarchy-mode', 'tree'])


def test_setup_logging_writes_rotating_file(tmp_path):
    root = logging.getLogger()
    saved = list(root.handlers), root.level
    try:
        main_module.setup_logging(verbose=True, log_dir=str(tmp_path))
        logging.getLogger('sectionorder.test').debug("hello")
        for handler in root.handlers:
            handler.flush()

        assert (tmp_path / 'sectionorder.log').read_text(encoding='utf-8').strip().endswith('hello')
        assert logging.getLogger('textual').level == logging.INFO
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])


def test_main_reports_config_errors(config_path, monkeypatch, capsys):
    monkeypatch.setattr(main_module, 'setup_logging', lambda verbose=False, log_dir=None: None)

    def broken_build_app(args, config=None):
        raise ConfigError("quiet_period must be >= 0, got -1.0")

    monkeypatch.setattr('sectionorder.tui.app.build_app', broken_build_app)

    assert main_module.main(['--section', '1', '--quiet-period', '-1']) == 2
    assert 'quiet_period' in capsys.readouterr().err


def test_debug_enabled_setting_turns_on_verbose_logging(config_path, monkeypatch):
    from sectionorder.config import Config

    Config().set_setting('debug_enabled', True)
    levels = []
    monkeypatch.setattr(main_module, 'setup_logging', lambda verbose=False, log_dir=None: levels.append(verbose))

    class FakeApp:
        def run(self):
            pass

    monkeypatch.setattr('sectionorder.tui.app.build_app', lambda args, config=None: FakeApp())

    assert main_module.main(['--section', '1']) == 0
    assert levels == [True]
