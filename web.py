#! /usr/bin/env python

# -*- coding: utf-8 -*-
"""
  photog
  ~~~~~~

  A small personal photo gallery backed by an object bucket.

  :license: Apache, see LICENSE for more details.
"""

import io
import math
import datetime
import logging

from flask import render_template

from app import app
from errors import NotFoundError
from security import isAdminRequest
import aws
import util
# registers the /api routes on the shared app
import api

logger = logging.getLogger('photog')


# Utility Functions

@app.context_processor
def inject_site():
  """Inject site name and the caller's admin flag into all templates"""
  return dict(SITENAME=app.config['SITENAME'], is_admin=isAdminRequest())

@app.template_filter('format_datetime')
def format_datetime_filter(value, format='%Y-%m-%d %H:%M'):
  """Format a datetime, 'N/A' if there is none"""
  if isinstance(value, datetime.datetime):
    return value.strftime(format)
  return 'N/A'

@app.template_filter('format_bytes')
def format_bytes_filter(value):
  if value is None:
    return 'N/A'
  for unit in ['B', 'KB', 'MB']:
    if value < 1024:
      return '%d %s' % (value, unit) if unit == 'B' else '%.1f %s' % (value, unit)
    value = value / 1024.0
  return '%.1f GB' % value

def get_pagination_data(total_items, page, per_page):
  """Calculate pagination metadata

  Args:
    total_items: number of photos in the whole listing
    page: Current page number (1-indexed)
    per_page: Items per page

  Returns:
    Dictionary with pagination metadata
  """
  total_pages = math.ceil(total_items / per_page)
  has_prev = page > 1
  has_next = page < total_pages

  return {
    'page': page,
    'per_page': per_page,
    'total_items': total_items,
    'total_pages': total_pages,
    'has_prev': has_prev,
    'has_next': has_next,
    'prev_page': page - 1 if has_prev else None,
    'next_page': page + 1 if has_next else None
  }

def sortedKeys():
  return sorted(aws.listPhotoKeys(app.config))


# URL Routing

@app.route('/', defaults={'page': 1})
@app.route('/page/<int:page>')
def gallery(page):
  """the grid of photos, one page at a time"""
  keys = sortedKeys()
  per_page = app.config['PER_PAGE']
  pagination = get_pagination_data(len(keys), page, per_page)
  if page < 1 or (page > 1 and page > pagination['total_pages']):
    raise NotFoundError('No such page')

  start = (page - 1) * per_page
  photos = keys[start:start + per_page]
  return render_template('gallery.html', photos=photos, pagination=pagination,
                         max_file_size_mb=app.config['MAX_FILE_SIZE_MB'],
                         allowed_types=app.config['ALLOWED_CONTENT_TYPES'])

@app.route('/photos/<path:key>')
def show_photo(key):
  """a single photo, enlarged, with its exif overlay"""
  photo = aws.getPhoto(key, app.config)
  if photo is None:
    raise NotFoundError('File not found')
  try:
    exif = util.getExifTags(io.BytesIO(photo.body.read()))
  finally:
    photo.body.close()

  keys = sortedKeys()
  prev_key = next_key = None
  if key in keys:
    index = keys.index(key)
    prev_key = keys[index - 1] if index > 0 else None
    next_key = keys[index + 1] if index + 1 < len(keys) else None

  return render_template('photo.html', key=key, photo=photo, exif=exif,
                         prev_key=prev_key, next_key=next_key)


if __name__ == '__main__':
  app.run(port=9600)
