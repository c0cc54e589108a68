"""
Command line tools for working with envelopes.
"""

import binascii
import sys

import click

from fieldcrypt.config import get_config
from fieldcrypt.errors import DecryptionFailed, MalformedEnvelope
from fieldcrypt.utils.cryptography import EnvelopeCodec, get_codec
from fieldcrypt.utils.encoding import DECODE_ERRORS, ENCODERS, get_encoder

encoding_option = click.option(
    '--encode', 'encoding', type=click.Choice(sorted(ENCODERS)), default=None,
    help='Extra encoding applied on top of the base64 envelope')


def _resolve_key(ctx, key):
    if key:
        return key
    configured = ctx.obj['config'].ENCRYPTION_KEY
    if not configured:
        raise click.UsageError('No key given. Pass --key or set FIELDCRYPT_ENCRYPTION_KEY.')
    return configured


@click.group()
@click.option('--environment', default=None, help='Configuration to load (production or development)')
@click.pass_context
def cli(ctx, environment):
    """Encrypt, decrypt and inspect fieldcrypt envelopes."""
    ctx.ensure_object(dict)
    config = get_config(environment)
    ctx.obj['config'] = config
    ctx.obj['codec'] = get_codec(config)


@cli.command('encrypt')
@click.argument('value')
@click.option('--key', default=None, help='Key material (defaults to FIELDCRYPT_ENCRYPTION_KEY)')
@encoding_option
@click.pass_context
def encrypt_command(ctx, value, key, encoding):
    """Seal VALUE and print the envelope."""
    sealed = ctx.obj['codec'].seal(value, _resolve_key(ctx, key))
    encoder = get_encoder(encoding)
    if encoder is not None:
        sealed = encoder.encode(sealed.encode('utf-8'))
    click.echo(sealed)


@cli.command('decrypt')
@click.argument('envelope')
@click.option('--key', default=None, help='Key material (defaults to FIELDCRYPT_ENCRYPTION_KEY)')
@encoding_option
@click.pass_context
def decrypt_command(ctx, envelope, key, encoding):
    """Open ENVELOPE and print the plaintext."""
    key = _resolve_key(ctx, key)
    encoder = get_encoder(encoding)
    try:
        if encoder is not None:
            try:
                envelope = encoder.decode(envelope).decode('utf-8')
            except DECODE_ERRORS:
                raise MalformedEnvelope('Stored value could not be decoded') from None
        plaintext = ctx.obj['codec'].open(envelope, key)
    except (MalformedEnvelope, DecryptionFailed) as e:
        click.echo(f'ERROR: {e}', err=True)
        sys.exit(1)
    click.echo(plaintext.decode('utf-8', errors='replace'))


@cli.command('inspect')
@click.argument('envelope')
def inspect_command(envelope):
    """Show the salt, IV and ciphertext length of ENVELOPE without decrypting it."""
    try:
        salt, iv, ciphertext = EnvelopeCodec.split(envelope)
    except MalformedEnvelope as e:
        click.echo(f'ERROR: {e}', err=True)
        sys.exit(1)
    click.echo(f'Salt: {binascii.hexlify(salt).decode("ascii")}')
    click.echo(f'IV: {binascii.hexlify(iv).decode("ascii")}')
    click.echo(f'Ciphertext: {len(ciphertext)} bytes')
