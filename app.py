#!/usr/bin/env python
# -*- coding:utf-8 -*-

from flask import Flask, request, jsonify, render_template
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from errors import PhotogError
import util

# create the app
app = Flask(__name__)

# Load default config and override config from config file
app.config.from_object('config')

# Configure Flask to work behind the CDN / reverse proxy
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1, x_prefix=1)

# Setup logging and share the handlers with Flask's own logger
logger = util.setup_custom_logger('photog', service_name='web',
                                  level=app.config['LOG_LEVEL'],
                                  log_dir=app.config['LOG_DIR'])
app.logger.handlers = logger.handlers
app.logger.setLevel(logger.level)


def wants_json():
  return request.path.startswith('/api/')


@app.errorhandler(PhotogError)
def handle_photog_error(e):
  if e.code >= 500:
    logger.error('%s on %s %s: %s', type(e).__name__, request.method, request.path, e.message)
  if wants_json():
    return jsonify(e.to_dict()), e.code
  if e.code == 404:
    return render_template('404.html'), 404
  return render_template('500.html', message=e.message), e.code


@app.errorhandler(404)
def page_not_found(error):
  if wants_json():
    return jsonify({'error': 'Not Found'}), 404
  return render_template('404.html'), 404


# Log all unhandled exceptions
@app.errorhandler(Exception)
def handle_exception(e):
  # Pass through HTTP errors
  if isinstance(e, HTTPException):
    return e
  # Log the error
  logger.error(f'Unhandled exception: {str(e)}', exc_info=True)
  if wants_json():
    return jsonify({'error': 'Internal Server Error'}), 500
  return render_template('500.html'), 500
