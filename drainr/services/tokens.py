# drainr/services/tokens.py
import secrets

# Lowercase letters and digits without the easily confused 0, 1, i, l, o
ALPHABET = 'abcdefghjkmnpqrstuvwxyz23456789'

PUBLIC_ID_LENGTH = 10
TOKEN_LENGTH = 24


def random_string(length, alphabet=ALPHABET):
    return ''.join(secrets.choice(alphabet) for _ in range(length))


def make_public_id():
    """Short id shown in quote URLs, e.g. 'k3m9p2z7qv'"""
    return random_string(PUBLIC_ID_LENGTH)


def make_token():
    """Secret paired with a public id to unlock the public link"""
    return random_string(TOKEN_LENGTH)
