#! /usr/bin/env python

# -*- coding: utf-8 -*-
"""
  photog
  ~~~~~~

  JSON API for the photo bucket: list, fetch, upload, delete.

  :license: Apache, see LICENSE for more details.
"""

#standard libs
import io, os, logging

from flask import request, jsonify, Response

# photog
from app import app
from errors import ClientError, NotFoundError, StoreError
from security import admin_required, getClientIp, isAdmin, parseAdminIpList
import aws
import util

logger = logging.getLogger('photog')

CHUNK_SIZE = 64 * 1024


def maxFileSizeBytes():
  return app.config['MAX_FILE_SIZE_MB'] * 1024 * 1024

def getUploadSize(file):
  """size of an uploaded file in bytes, leaving the stream at the start"""
  file.stream.seek(0, os.SEEK_END)
  size = file.stream.tell()
  file.stream.seek(0)
  return size

def streamBody(body):
  """yield a store body in chunks, closing it even if the client goes away"""
  try:
    for chunk in body.iter_chunks(CHUNK_SIZE):
      yield chunk
  finally:
    body.close()

def validateUpload(file):
  """raise ClientError unless the upload is present, small enough and an allowed type"""
  if file is None or not file.filename:
    raise ClientError('No file provided')

  size = getUploadSize(file)
  if size > maxFileSizeBytes():
    raise ClientError('File size exceeds the limit of %dMB.' % app.config['MAX_FILE_SIZE_MB'])

  # the declared type is taken as is, the bytes are not sniffed
  if file.mimetype not in app.config['ALLOWED_CONTENT_TYPES']:
    raise ClientError('Invalid file type. Only JPEG, PNG, and WebP images are allowed.')
  return size


@app.route('/health')
def health():
  """Health check endpoint for Docker healthchecks - no logging"""
  return jsonify({'status': 'ok'}), 200


@app.route('/api/list')
def apiList():
  """every key in the bucket as [{key}], unsorted"""
  keys = aws.listPhotoKeys(app.config)
  return jsonify([{'key': key} for key in keys])


@app.route('/api/ip')
def apiIp():
  """who does the server think the caller is, and are they admin"""
  ip = getClientIp()
  adminIpList = parseAdminIpList(app.config.get('ADMIN_IP_LIST'))
  if ip is None or adminIpList is None:
    return jsonify({'ip': 'unknown', 'isAdmin': False})
  return jsonify({'ip': ip, 'isAdmin': isAdmin(ip, adminIpList)})


@app.route('/api/upload', methods=['POST'])
@admin_required('upload files')
def apiUpload():
  file = request.files.get('file')
  size = validateUpload(file)

  key = util.generatePhotoKey(file.filename)
  contentType = file.mimetype
  logger.info('UPLOAD_START ip=%s filename=%s key=%s size=%d type=%s',
              getClientIp(), file.filename, key, size, contentType)
  try:
    aws.putPhoto(key, file.stream, contentType, app.config)
  except StoreError as e:
    raise StoreError('Upload failed: %s' % e.message)

  logger.info('UPLOAD_COMPLETE key=%s', key)
  return jsonify({'message': 'File uploaded successfully', 'key': key}), 200


@app.route('/api/delete/', defaults={'key': ''}, methods=['DELETE'])
@app.route('/api/delete/<path:key>', methods=['DELETE'])
@admin_required('delete files')
def apiDelete(key):
  # fail on a missing bucket before looking at the key
  aws.getBucketName(app.config)
  if not key:
    raise ClientError('Missing photo key in URL.')

  try:
    # delete on the store succeeds for missing keys, so look first
    if aws.headPhoto(key, app.config) is None:
      logger.info('DELETE_NOT_FOUND key=%s', key)
      raise NotFoundError('File not found: %s' % key)
    aws.deletePhoto(key, app.config)
  except StoreError as e:
    raise StoreError('Deletion failed: %s' % e.message)

  logger.info('DELETE_COMPLETE ip=%s key=%s', getClientIp(), key)
  return jsonify({'message': 'File %s deleted successfully.' % key}), 200


# keys starting with 'exif/' can't be fetched through /api/<key> because of
# this route; generated keys are uuids so none ever do
@app.route('/api/exif/<path:key>')
def apiExif(key):
  """readable exif fields for the viewer overlay"""
  photo = aws.getPhoto(key, app.config)
  if photo is None:
    raise NotFoundError('File not found')
  try:
    data = photo.body.read()
  finally:
    photo.body.close()
  return jsonify(util.getExifTags(io.BytesIO(data)))


@app.route('/api/<path:key>')
def apiPhoto(key):
  """the photo itself, cacheable forever since photos never change"""
  photo = aws.getPhoto(key, app.config)
  if photo is None:
    raise NotFoundError('File not found')

  response = Response(streamBody(photo.body),
                      content_type=photo.contentType or 'application/octet-stream')
  if photo.size is not None:
    response.headers['Content-Length'] = str(photo.size)
  response.headers['Cache-Control'] = 'public, max-age=%d' % app.config['CACHE_MAX_AGE']
  return response
