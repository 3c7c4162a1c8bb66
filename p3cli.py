import logging
import sys

import click
import requests

from p3client import P3Client, P3Error
from p3client.config import DEFAULT_CONFIG_FILE, load_config
from p3client.curl import format_curl


def _fail(message: str):
    click.echo(message, err=True)
    sys.exit(1)


@click.group(context_settings=dict(help_option_names=['--help']))
@click.option('--profile', default=None, help='Profile name from .config.yaml')
@click.option('--config', 'config_path', default=DEFAULT_CONFIG_FILE,
              help='Path to configuration file')
@click.option('--endpoint', default=None, help='Gateway endpoint URL')
@click.option('--access-key-id', default=None,
              help='P3 access key ID, default to read from env P3_ACCESS_KEY_ID')
@click.option('--access-key-secret', default=None,
              help='P3 access key secret, default to read from env P3_ACCESS_KEY_SECRET')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, profile, config_path, endpoint, access_key_id, access_key_secret, verbose):
    """CLI tool for the P3 object storage gateway."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)

    ctx.obj = {
        'profile': profile,
        'config_path': config_path,
        'overrides': {
            'endpoint': endpoint,
            'access_key_id': access_key_id,
            'access_key_secret': access_key_secret,
        },
    }


def _client(ctx) -> P3Client:
    """Load config and build the client on first use by a command."""
    obj = ctx.obj
    if 'client' in obj:
        return obj['client']

    try:
        conf = load_config(obj['profile'], obj['config_path'], overrides=obj['overrides'])
    except P3Error as e:
        _fail(f"Error loading config: {e}")

    for key in ('access_key_id', 'access_key_secret'):
        if not conf.get(key):
            _fail(f"Missing '{key}' in config, options or environment")

    obj['conf'] = conf
    obj['client'] = P3Client.from_config(conf)
    return obj['client']


@cli.command('put')
@click.argument('bucket')
@click.argument('key')
@click.argument('data', type=click.File('rb'))
@click.pass_context
def put_cmd(ctx, bucket, key, data):
    """Upload a file and print its CID."""
    client = _client(ctx)
    try:
        cid = client.put_object(bucket, key, data.read())
    except (P3Error, requests.RequestException) as e:
        _fail(f"Error uploading {key}: {e}")
    click.echo(cid)


@cli.command('get')
@click.argument('bucket')
@click.argument('key')
@click.option('--output', '-o', type=click.File('wb'), default='-',
              help='Write object to file instead of stdout')
@click.pass_context
def get_cmd(ctx, bucket, key, output):
    """Download an object by bucket and key."""
    client = _client(ctx)
    try:
        content = client.get_object(bucket, key)
    except (P3Error, requests.RequestException) as e:
        _fail(f"Error downloading {key}: {e}")
    output.write(content)


@cli.command('get-cid')
@click.argument('cid')
@click.option('--output', '-o', type=click.File('wb'), default='-',
              help='Write object to file instead of stdout')
@click.pass_context
def get_cid_cmd(ctx, cid, output):
    """Download an object by CID."""
    client = _client(ctx)
    try:
        content = client.get_object_by_cid(cid)
    except (P3Error, requests.RequestException) as e:
        _fail(f"Error downloading {cid}: {e}")
    output.write(content)


@cli.command('curl')
@click.option('--method', required=True,
              type=click.Choice(['GET', 'PUT'], case_sensitive=False))
@click.option('--bucket', default='', help='Bucket name')
@click.option('--key', required=True, help='Key name')
@click.option('--data', 'data_path', type=click.Path(exists=True, dir_okay=False),
              help='File path to data file (PUT only)')
@click.pass_context
def curl_cmd(ctx, method, bucket, key, data_path):
    """Print a signed curl command instead of sending the request."""
    method = method.upper()
    if method == 'PUT' and not data_path:
        raise click.UsageError('--data is required for PUT')
    client = _client(ctx)

    try:
        if method == 'PUT':
            with open(data_path, 'rb') as f:
                data = f.read()
            prepared = client.signed_request(
                'PUT', bucket, key, data=data,
                content_type='application/octet-stream'
            )
        else:
            data_path = None
            prepared = client.signed_request('GET', bucket, key)
    except P3Error as e:
        _fail(f"Error building curl request: {e}")

    click.echo("Generated curl cmd:")
    click.echo(format_curl(prepared, data_file=data_path))


if __name__ == '__main__':
    cli()
