"""Development settings for the court booking project.

This module extends the base settings with development specific
configuration, such as enabling debug, allowing all hosts and using the
mock payment provider unless a MercadoPago token is configured. Do not use
these settings in production!
"""

from .base import *  # noqa: F401,F403

# Enable debug mode for development
DEBUG = True

# Allow all hosts in development
ALLOWED_HOSTS = ['*']

# Keep the default manifest-free storage so runserver works without collectstatic
STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

PAYMENT_PROVIDER = get_env('PAYMENT_PROVIDER', 'mock')  # noqa: F405
