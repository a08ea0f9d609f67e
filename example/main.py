import argparse
import json
import logging
import sys

from keyattest import (
    ApplicationIdentity,
    AttestationIdError,
    HttpIdentityProvider,
    ProviderConnection,
    build_attestation_application_id,
    gather_attestation_application_id,
)
from keyattest.attestation import CertificateParseError, load_signatures_pem
from keyattest.provider import DEFAULT_PROVIDER_URL

def main():
    # Set up argument parsing
    parser = argparse.ArgumentParser()
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument('-i', '--identity',
                        help='JSON file with a packageInfos list')
    source.add_argument('-u', '--uid', type=int,
                        help='Caller uid to look up at the provider')
    parser.add_argument('-c', '--certs',
                        help='PEM signing certificates for the first package (with --identity)')
    parser.add_argument('-p', '--provider-url',
                        default=DEFAULT_PROVIDER_URL,
                        help='Package info provider base URL')
    args = parser.parse_args()

    if args.certs and not args.identity:
        parser.error('--certs requires --identity')

    # Configure logging
    logging.basicConfig(
        format='%(message)s',
        level=logging.INFO
    )

    try:
        if args.identity:
            logging.info(f"Reading application identity from {args.identity}")
            with open(args.identity, 'r') as f:
                identity = ApplicationIdentity.from_dict(json.load(f))
            if args.certs:
                logging.info(f"Reading signing certificates from {args.certs}")
                with open(args.certs, 'rb') as f:
                    identity = identity.with_signatures(load_signatures_pem(f.read()))
            payload = build_attestation_application_id(identity)
        else:
            logging.info(f"Looking up uid {args.uid} at {args.provider_url}")
            connection = ProviderConnection(lambda: HttpIdentityProvider(args.provider_url))
            payload = gather_attestation_application_id(args.uid, connection=connection)
    except (OSError, ValueError, CertificateParseError) as e:
        logging.error(f"Error reading application identity: {e}")
        sys.exit(1)
    except AttestationIdError as e:
        logging.error(f"Error building attestation application id ({int(e.code)}): {e}")
        sys.exit(1)

    logging.info(f"Attestation application id ({len(payload)} bytes):")
    print(payload.hex())

if __name__ == "__main__":
    main()
