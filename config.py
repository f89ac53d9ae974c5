import os

def _env(name, default=None):
  """read an optional setting, treating an empty value as unset"""
  value = os.environ.get(name)
  if value is None or value.strip() == '':
    return default
  return value.strip()

# Statement for enabling the development environment
DEBUG = _env('PHOTOG_DEBUG', 'false').lower() == 'true'

SITENAME = _env('SITENAME', 'photog')

# Admin allowlist, comma separated. Unset means nobody is admin.
ADMIN_IP_LIST = _env('ADMIN_IP_LIST')

# The single reverse proxy header we trust to name the caller
TRUSTED_IP_HEADER = _env('TRUSTED_IP_HEADER', 'CF-Connecting-IP')

# Object storage (S3 or any S3 compatible endpoint such as R2)
S3_BUCKET_NAME = _env('S3_BUCKET_NAME')
S3_ENDPOINT_URL = _env('S3_ENDPOINT_URL')
AWS_ACCESS_KEY_ID = _env('AWS_ACCESS_KEY_ID')
AWS_SECRET_ACCESS_KEY = _env('AWS_SECRET_ACCESS_KEY')
AWS_REGION = _env('AWS_REGION', 'auto')

# Uploads
MAX_FILE_SIZE_MB = int(_env('MAX_FILE_SIZE_MB', '10'))
ALLOWED_CONTENT_TYPES = ['image/jpeg', 'image/png', 'image/webp']

# Photos never change once uploaded
CACHE_MAX_AGE = 31536000

PER_PAGE = int(_env('PER_PAGE', '24'))

# Logging
LOG_LEVEL = _env('LOG_LEVEL', 'INFO')
LOG_DIR = _env('LOG_DIR')
