"""
Command Line Interface for nerdctld.
"""
import sys

import click

from .. import API_VERSION, __version__
from ..exceptions import ConfigError, NerdctldError
from ..PARSERS.config_parser import ConfigParser
from ..RUNNERS.nerdctl import Buildctl, Nerdctl
from ..SERVER.handlers import DockerAPI
from ..SERVER.transport import create_server, serve
from ..UTILS.log_setup import configure_logging


@click.command()
@click.option('--addr', '-H', default=None, help='Listen address: unix://path, tcp://host:port or fd://[N]')
@click.option('--debug', is_flag=True, help='Log every CLI invocation')
@click.option('--config', '-c', 'config_path', type=click.Path(dir_okay=False),
              default=None, help='YAML configuration file')
@click.option('--nerdctl', 'nerdctl_path', default=None, help='Path of the nerdctl binary')
@click.option('--buildctl', 'buildctl_path', default=None, help='Path of the buildctl binary')
@click.option('--buildkit-host', default=None, help='BuildKit daemon address for buildctl')
@click.option('--namespace', '-n', default=None, help='containerd namespace')
@click.version_option(__version__, prog_name='nerdctld',
                      message=f'%(prog)s version %(version)s (API {API_VERSION})')
def main(addr, debug, config_path, nerdctl_path, buildctl_path, buildkit_host, namespace):
    """
    nerdctld - Docker Engine API for nerdctl.

    Serves the Docker API and answers each request by running nerdctl.
    """
    overrides = {
        "address": addr,
        "debug": debug or None,
        "nerdctl_path": nerdctl_path,
        "buildctl_path": buildctl_path,
        "buildkit_host": buildkit_host,
        "namespace": namespace,
    }
    try:
        config = ConfigParser().load(config_path, overrides)
    except ConfigError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    logger = configure_logging(config.debug)
    nerdctl = Nerdctl.from_config(config)
    try:
        version = nerdctl.version_banner()
    except NerdctldError as e:
        logger.error("cannot run %s: %s", config.nerdctl_path, e)
        sys.exit(1)
    logger.info("nerdctld %s using nerdctl %s", __version__, version)

    api = DockerAPI(nerdctl, Buildctl.from_config(config))
    try:
        server = create_server(config.listen_address, api.router())
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)
    serve(server, config.listen_address)


if __name__ == '__main__':
    main()
