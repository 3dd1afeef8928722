from click.testing import CliRunner
from nerdctld import __version__
from nerdctld.CLI.main import main

CLEAN_ENV = {key: None for key in (
    "NERDCTLD_ADDR", "NERDCTLD_DEBUG", "NERDCTLD_NERDCTL", "NERDCTLD_BUILDCTL",
    "BUILDKIT_HOST", "CONTAINERD_NAMESPACE",
)}

def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(main, ['--help'])
    assert result.exit_code == 0
    assert 'Docker Engine API for nerdctl' in result.output
    assert '--addr' in result.output

def test_cli_version():
    runner = CliRunner()
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert f'nerdctld version {__version__} (API 1.43)' in result.output

def test_cli_rejects_unknown_scheme():
    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(main, ['--addr', 'http://localhost:2375'], env=CLEAN_ENV)
    assert result.exit_code == 1
    assert 'unsupported listen address' in result.output

def test_cli_rejects_bad_config_file():
    runner = CliRunner()
    with runner.isolated_filesystem():
        with open('nerdctld.yaml', 'w') as f:
            f.write('listen: somewhere\n')
        result = runner.invoke(main, ['-c', 'nerdctld.yaml'], env=CLEAN_ENV)
    assert result.exit_code == 1
    assert 'unknown config keys: listen' in result.output

def test_cli_missing_nerdctl():
    runner = CliRunner()
    with runner.isolated_filesystem():
        result = runner.invoke(main, ['--nerdctl', './no-such-nerdctl', '--addr', 'unix://api.sock'],
                               env=CLEAN_ENV)
    assert result.exit_code == 1
