"""envkeep Meta information.
   envkeep keeps named variants of environment variables in an optionally
   encrypted vault and switches between them in the current shell.
"""
__title__ = 'envkeep'
__description__ = (
   'Keep named environment variable variants in an encrypted vault '
   'and switch between them from the shell.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2025 envkeep authors'
__author__ = 'envkeep authors'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/envkeep/envkeep'
