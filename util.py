#! /usr/bin/env python

"""utility methods"""

import os, re, math, uuid, logging
from PIL import Image, ExifTags, UnidentifiedImageError

# set up logging
logger = logging.getLogger('photog')


def setup_custom_logger(name, service_name='app', level='INFO', log_dir=None):
    """Setup logger that writes to the console and, optionally, a shared file

    Args:
        name: Logger name (usually 'photog')
        service_name: Service identifier ('web', 'api', 'cli') shown in each line
        level: Level name, e.g. 'INFO' or 'DEBUG'
        log_dir: Directory for photog.log, or None for console only
    """
    # Format: timestamp [SERVICE] LEVEL - module - message
    formatter = logging.Formatter(
        fmt=f'%(asctime)s [{service_name.upper()}] %(levelname)s - %(module)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Avoid duplicate handlers if called multiple times
    if logger.handlers:
        return logger

    # Console handler (for docker logs command)
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_dir:
        try:
            os.makedirs(log_dir, exist_ok=True)
            file_handler = logging.FileHandler(os.path.join(log_dir, 'photog.log'))
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)
        except OSError as e:
            logger.warning(f'Could not setup file logging: {e}')

    return logger


# photo keys

_safeExtension = re.compile(r'^[a-zA-Z0-9]+$')

def getSafeExtension(filename):
  """returns the filename's extension if it is plain alphanumeric, else ''"""
  if not filename or '.' not in filename:
    return ''
  extension = filename.rsplit('.', 1)[1]
  if _safeExtension.match(extension):
    return extension
  return ''

def generatePhotoKey(filename):
  """a fresh random key, keeping the client's extension only when it is safe"""
  extension = getSafeExtension(filename)
  key = str(uuid.uuid4())
  if extension:
    key = key + '.' + extension
  return key


# exif

EXIF_IFD = 0x8769
GPS_IFD = 0x8825

EXIF_FIELDS = ['Make', 'Model', 'LensModel', 'DateTimeOriginal',
  'ExposureTime', 'FNumber', 'ISOSpeedRatings', 'FocalLength']

def _exifValue(field, value):
  """turn a raw exif value into something readable and json safe"""
  if isinstance(value, bytes):
    value = value.decode('ascii', errors='ignore')
  if isinstance(value, str):
    return value.strip('\x00').strip()
  if isinstance(value, tuple):
    return ', '.join(str(_exifValue(field, v)) for v in value)
  if field == 'ExposureTime':
    seconds = float(value)
    if 0 < seconds < 1:
      return '1/%d' % round(1 / seconds)
    return '%g' % seconds
  if field == 'FNumber':
    return 'f/%g' % round(float(value), 1)
  if field == 'FocalLength':
    return '%g mm' % round(float(value), 1)
  if isinstance(value, int):
    return value
  return _finite(float(value))

def _finite(number):
  # rationals with a zero denominator come out as nan, which json can't carry
  if not math.isfinite(number):
    raise ValueError('not a finite number: %r' % number)
  return number

def _gpsDegrees(dms, ref):
  degrees = _finite(float(dms[0]) + float(dms[1]) / 60.0 + float(dms[2]) / 3600.0)
  if ref in ('S', 'W'):
    degrees = -degrees
  return round(degrees, 6)

def getExifTags(fileobj):
  """returns a flat dict of readable exif fields for an image file object"""
  try:
    img = Image.open(fileobj)
    exif = img.getexif()
  except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
    logger.warning('EXIF_UNREADABLE error=%s', e)
    return {}

  tags = {ExifTags.TAGS.get(tag, tag): value for (tag, value) in exif.items()}
  tags.update({ExifTags.TAGS.get(tag, tag): value
    for (tag, value) in exif.get_ifd(EXIF_IFD).items()})

  result = {}
  for field in EXIF_FIELDS:
    if field in tags:
      try:
        result[field] = _exifValue(field, tags[field])
      except (TypeError, ValueError, ZeroDivisionError) as e:
        logger.warning('EXIF_FIELD_SKIPPED field=%s error=%s', field, e)
  result['ImageWidth'], result['ImageHeight'] = img.size

  # Process GPS Info, if it's there
  gps_info = exif.get_ifd(GPS_IFD)
  if gps_info:
    try:
      latitude = _gpsDegrees(gps_info[2], gps_info.get(1))
      longitude = _gpsDegrees(gps_info[4], gps_info.get(3))
    except (KeyError, IndexError, ZeroDivisionError, TypeError, ValueError) as e:
      logger.warning('Error processing GPS info: {}'.format(e))
    else:
      result['GPSLatitude'] = latitude
      result['GPSLongitude'] = longitude
  return result
