#! /usr/bin/env python

"""aws methods - boto3 object store access with connection caching"""

# std libs
import logging
from collections import namedtuple

# third party
import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import BotoCoreError, ClientError

# our own libs
from errors import ConfigError, StoreError

# set up logging
logger = logging.getLogger('photog')

# Module-level S3 client cache (boto3 has built-in connection pooling)
_s3_client = None

StoredPhoto = namedtuple('StoredPhoto', ['key', 'body', 'contentType', 'size', 'lastModified'])

def get_s3_client(config):
  """Get or create cached S3 client (boto3 handles connection pooling)"""
  global _s3_client
  if _s3_client is None:
    _s3_client = boto3.client(
      's3',
      endpoint_url=config.get('S3_ENDPOINT_URL'),
      region_name=config.get('AWS_REGION'),
      aws_access_key_id=config.get('AWS_ACCESS_KEY_ID'),
      aws_secret_access_key=config.get('AWS_SECRET_ACCESS_KEY')
    )
    logger.debug('S3 client initialized')
  return _s3_client

def getBucketName(config):
  """returns the configured bucket, or raises ConfigError if there is none"""
  bucket_name = config.get('S3_BUCKET_NAME')
  if bucket_name is None:
    logger.error('S3_BUCKET_NAME is not configured, photo storage is unavailable')
    raise ConfigError('File storage configuration error.')
  return bucket_name

def _isNotFound(e):
  return e.response.get('Error', {}).get('Code') in ('NoSuchKey', 'NotFound', '404')

def listPhotoKeys(config):
  """
  List every key in the bucket

  The store pages its listings, so all pages are walked.

  Returns:
    list of key strings, in whatever order the store returns them
  """
  bucket_name = getBucketName(config)
  keys = []
  try:
    s3 = get_s3_client(config)
    paginator = s3.get_paginator('list_objects_v2')
    for page in paginator.paginate(Bucket=bucket_name):
      for obj in page.get('Contents', []):
        keys.append(obj['Key'])
  except (ClientError, BotoCoreError) as e:
    logger.error('S3 List FAILED: %s', str(e))
    raise StoreError(str(e))
  logger.debug('S3 List: %d keys in %s', len(keys), bucket_name)
  return keys

def getPhoto(key, config):
  """
  Fetch a photo's body and metadata

  Args:
    key: S3 object key, used exactly as given
    config: App config with AWS credentials and bucket name

  Returns:
    StoredPhoto with a streaming body, or None if the key does not exist
  """
  bucket_name = getBucketName(config)
  try:
    s3 = get_s3_client(config)
    response = s3.get_object(Bucket=bucket_name, Key=key)
  except ClientError as e:
    if _isNotFound(e):
      return None
    logger.error('S3 Get FAILED: %s - %s', key, str(e))
    raise StoreError(str(e))
  except BotoCoreError as e:
    logger.error('S3 Get FAILED: %s - %s', key, str(e))
    raise StoreError(str(e))
  return StoredPhoto(
    key=key,
    body=response['Body'],
    contentType=response.get('ContentType'),
    size=response.get('ContentLength'),
    lastModified=response.get('LastModified')
  )

def headPhoto(key, config):
  """
  Existence probe, no body transfer

  Returns:
    dict of object metadata, or None if the key does not exist
  """
  bucket_name = getBucketName(config)
  try:
    s3 = get_s3_client(config)
    return s3.head_object(Bucket=bucket_name, Key=key)
  except ClientError as e:
    if _isNotFound(e):
      return None
    logger.error('S3 Head FAILED: %s - %s', key, str(e))
    raise StoreError(str(e))
  except BotoCoreError as e:
    logger.error('S3 Head FAILED: %s - %s', key, str(e))
    raise StoreError(str(e))

def putPhoto(key, fileobj, contentType, config):
  """
  Upload a file object to S3 with its content type stored as metadata

  Args:
    key: S3 object key (path in bucket)
    fileobj: readable binary file object
    contentType: value browsers will see in Content-Type when fetching it
    config: App config with AWS credentials and bucket name
  """
  bucket_name = getBucketName(config)
  logger.info('S3 Upload Starting: s3://%s/%s (Content-Type: %s)', bucket_name, key, contentType)
  try:
    s3 = get_s3_client(config)
    s3.upload_fileobj(fileobj, bucket_name, key, ExtraArgs={'ContentType': contentType})
  except (ClientError, BotoCoreError, S3UploadFailedError) as e:
    logger.error('S3 Upload FAILED: Error uploading %s: %s', key, str(e))
    raise StoreError(str(e))
  logger.info('S3 Upload SUCCESS: s3://%s/%s', bucket_name, key)

def deletePhoto(key, config):
  """
  Delete object from S3

  S3 does not complain about missing keys here; callers that care
  should headPhoto first.
  """
  bucket_name = getBucketName(config)
  logger.info('Deleting from S3: %s', key)
  try:
    s3 = get_s3_client(config)
    s3.delete_object(Bucket=bucket_name, Key=key)
  except (ClientError, BotoCoreError) as e:
    logger.error('S3 Delete FAILED: %s - %s', key, str(e))
    raise StoreError(str(e))
  logger.info('S3 Delete SUCCESS: %s', key)
