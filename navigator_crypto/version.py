"""Navigator Crypto Meta information.
   Navigator Crypto provides a self-monitoring symmetric encryption service
   (authenticated envelopes, vault records, hashing and identifiers).
"""
__title__ = 'navigator_crypto'
__description__ = (
   'Navigator Crypto provides authenticated symmetric encryption, '
   'vault envelopes and health reporting for Navigator services.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/navigator-crypto'
