"""Envelope Vault Meta information.
   Envelope Vault protects one-time secrets at rest using hybrid
   AES-256-GCM + RSA-OAEP envelope encryption.
"""
__title__ = 'envelope_vault'
__description__ = (
   'Envelope Vault protects one-time secrets at rest using hybrid '
   'AES-256-GCM + RSA-OAEP envelope encryption.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
