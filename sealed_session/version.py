"""Sealed Session Meta information.
   Sealed Session signs and encrypts cookies and stores session data
   in a key-value backend.
"""
__title__ = 'sealed_session'
__description__ = (
   'Sealed Session signs and encrypts cookies and stores session data '
   'into a key-value backend.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
