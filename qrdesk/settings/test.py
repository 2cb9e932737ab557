from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver']

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

PAYMENTS_MAINTENANCE_MODE = False

QRCODES_GEO_LOOKUP = False

PAYMENTS = {
    **PAYMENTS,
    'SITE_URL': 'https://testserver',
    'ALLOW_ENV_CREDENTIALS': True,
}

# Tests opt into the legacy env path explicitly via override_settings
PAYMENT_GATEWAY_CREDENTIALS = {name: {} for name in PAYMENT_GATEWAY_CREDENTIALS}
