import getpass
import sys
from typing import Dict

from .keychain import (
    PASSWORD_KEY, USERNAME_KEY, cache_credential, get_credential, is_keyring_available
)


def get_credentials() -> Dict[str, str]:
    """Get backend login credentials from the environment, keychain, or a prompt.

    Returns a dictionary with API_USERNAME and API_PASSWORD. Values typed at
    the prompt are cached in the system keychain when one is available.
    """
    credentials = {}

    required_creds = [
        {
            'env_var': USERNAME_KEY,
            'key': 'API_USERNAME',
            'prompt': 'POP backend username: ',
            'is_password': False
        },
        {
            'env_var': PASSWORD_KEY,
            'key': 'API_PASSWORD',
            'prompt': 'POP backend password: ',
            'is_password': True
        },
    ]

    keyring_available = is_keyring_available()

    for cred in required_creds:
        value = get_credential(cred['env_var'])

        if not value:
            print(f"\nMissing {cred['env_var']}.")

            if cred['is_password']:
                value = getpass.getpass(cred['prompt'])
            else:
                value = input(cred['prompt'])

            if not value:
                print(f"Error: {cred['env_var']} cannot be empty.", file=sys.stderr)
                sys.exit(1)

            cache_credential(cred['env_var'], value)

            if keyring_available:
                print(f"✓ {cred['env_var']} saved to system keychain")
            else:
                print(f"✓ {cred['env_var']} set for this process only")

        credentials[cred['key']] = value

    return credentials
