#! /usr/bin/env python

# -*- coding: utf-8 -*-
"""
    photog
    ~~~~~~

    Upload photos to a photog server from the command line.

    The server only accepts uploads from allowlisted IPs, so run this from
    an admin address.

    :license: Apache, see LICENSE for more details.
"""

import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import argparse
import mimetypes
import time
import util
from requests_toolbelt import MultipartEncoder
import requests

# older mime tables don't know webp
mimetypes.add_type('image/webp', '.webp')

parser = argparse.ArgumentParser(description='upload photos into a photog bucket.')
parser.add_argument('--files', metavar='N', type=str, nargs='+',
                   help='files to upload', required=True)
parser.add_argument('--apiurl', help='URL of the photog API endpoint', default='http://127.0.0.1:9600/api')
parser.add_argument('--dryrun', action='store_true', help='show what would have been done')
parser.add_argument('--delay', type=float, default=0.1, help='delay between API calls in seconds (default: 0.1)')

logger = util.setup_custom_logger('photog', service_name='cli')

def guessContentType(filename):
  """the image type the server will be told, or None if we can't tell"""
  content_type, _ = mimetypes.guess_type(filename)
  return content_type

def checkAdmin(apiurl):
  """ask the server whether our IP is on its allowlist"""
  try:
    resp = requests.get('{0}/ip'.format(apiurl), timeout=30)
    resp.raise_for_status()
    data = resp.json()
  except requests.exceptions.RequestException as e:
    logger.warning('Could not check admin status: {}'.format(e))
    return False
  except ValueError as e:
    logger.warning('Invalid JSON response from server: {}'.format(e))
    return False
  logger.info('server sees us as {0} (admin: {1})'.format(data.get('ip'), data.get('isAdmin')))
  return bool(data.get('isAdmin'))

def uploadFile(filename, apiurl, dryrun=False):
  """
  Upload one file

  Returns:
    the key the server stored it under, or None on failure / dryrun
  """
  content_type = guessContentType(filename)
  if content_type is None:
    logger.error('{0} skipped! (unknown file type)'.format(filename))
    return None

  if dryrun:
    logger.info('{0} finished! ({1} {2})'.format(filename, '200', 'dryrun'))
    return None

  with open(filename, 'rb') as f:
    m = MultipartEncoder(fields={'file': (os.path.basename(filename), f, content_type)})
    try:
      r = requests.post('{0}/upload'.format(apiurl), data=m, headers={'Content-Type': m.content_type})
    except requests.exceptions.RequestException as e:
      logger.error('Failed to upload {}: {}'.format(filename, e))
      return None

  # Check for HTTP errors
  if r.status_code != 200:
    logger.error('{0} failed! ({1} {2})'.format(filename, r.status_code, r.reason))
    try:
      error_data = r.json()
      if 'error' in error_data:
        logger.error('  Error: {}'.format(error_data['error']))
    except ValueError:
      logger.error('  Response: {}'.format(r.text[:200]))
    return None

  key = r.json().get('key')
  logger.info('{0} finished! ({1} {2}) key={3}'.format(filename, r.status_code, r.reason, key))
  return key

def uploadFiles(filenames, apiurl, dryrun=False, delay=0):
  keys = []
  for filename in filenames:
    # Rate limiting - small delay between files
    if delay > 0:
      time.sleep(delay)
    key = uploadFile(filename, apiurl, dryrun=dryrun)
    if key:
      keys.append(key)

  if not keys and not dryrun:
    logger.warning('No photos were successfully uploaded!')
  return keys

def main(args):
  """Main program"""
  logger.info('Starting Upload')
  if not args.dryrun and not checkAdmin(args.apiurl):
    logger.warning('server does not list this IP as admin, uploads will be refused')

  keys = uploadFiles(args.files, args.apiurl, dryrun=args.dryrun, delay=args.delay)
  for key in keys:
    print('{0}/{1}'.format(args.apiurl, key))
  logger.info('Upload Finished')
  return 0 if keys or args.dryrun else 1

if __name__ == "__main__":
  sys.exit(main(parser.parse_args()))
