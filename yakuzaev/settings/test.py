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

PAYU_MERCHANT_KEY = 'gtKFFx'
PAYU_SALT = 'eCwWELxi'
PAYU_MODE = 'test'

EMAIL_BACKEND = 'django.core.mail.backends.locmem.EmailBackend'
PAYMENTS_ADMIN_EMAILS = 'admin@yakuzaev.com'
SITE_URL = 'https://shop.yakuzaev.test'
