"""
Base Django settings for the exam portal.
Common settings shared between development and production.
"""
import os
import sys
from datetime import timedelta
from pathlib import Path
import environ

# Build paths
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Check if running tests
TESTING = 'test' in sys.argv or 'pytest' in sys.modules

# Environment variables
env = environ.Env(
    DEBUG=(bool, False),
    ALLOWED_HOSTS=(list, ['*']),
)
environ.Env.read_env(os.path.join(BASE_DIR, '.env'))

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = env('SECRET_KEY', default='django-insecure-change-me-in-production')

# Admin lives under a configurable path
SECRET_ADMIN_URL = env('SECRET_ADMIN_URL', default='portal-admin')

# Application definition
INSTALLED_APPS = [
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    # Third-party apps
    'axes',
    # Project apps
    'core.apps.CoreConfig',
    'creator.apps.CreatorConfig',
    'fieldops.apps.FieldOpsConfig',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
    # Django-axes rate limiting (must be after AuthenticationMiddleware)
    'axes.middleware.AxesMiddleware',
    # HQ-only API gate (must be after AuthenticationMiddleware)
    'core.middleware.RoleBasedAccessMiddleware',
    'core.middleware.SessionTimeoutMiddleware',
]

ROOT_URLCONF = 'exam_portal.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [BASE_DIR / 'templates'],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'exam_portal.wsgi.application'

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {'NAME': 'django.contrib.auth.password_validation.UserAttributeSimilarityValidator'},
    {'NAME': 'django.contrib.auth.password_validation.MinimumLengthValidator',
     'OPTIONS': {'min_length': 8}},
    {'NAME': 'django.contrib.auth.password_validation.CommonPasswordValidator'},
    {'NAME': 'django.contrib.auth.password_validation.NumericPasswordValidator'},
]

# Login URL
LOGIN_URL = '/login/'
LOGIN_REDIRECT_URL = '/api/field/exam-schedules'

# Internationalization
LANGUAGE_CODE = 'en-us'
# Scheduled start/end instants are interpreted in this zone
TIME_ZONE = env('TIME_ZONE', default='UTC')
USE_I18N = True
USE_TZ = True

# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Session settings
# SessionTimeoutMiddleware sets per-interface expiry; this is the fallback.
SESSION_COOKIE_AGE = 1800
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = 'Lax'

# ==========================================================================
# SCHEDULING SETTINGS
# ==========================================================================
SCHEDULE_MIN_DURATION_MINUTES = env.int('SCHEDULE_MIN_DURATION_MINUTES', default=10)
SCHEDULE_MAX_DURATION_MINUTES = env.int('SCHEDULE_MAX_DURATION_MINUTES', default=24 * 60)

# ==========================================================================
# LOGGING
# ==========================================================================
LOG_LEVEL = env('LOG_LEVEL', default='INFO')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '%(asctime)s %(levelname)s %(name)s %(message)s',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'portal.audit': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'portal.auth': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
        'core': {'handlers': ['console'], 'level': LOG_LEVEL, 'propagate': False},
    },
}

# ==========================================================================
# DJANGO-AXES RATE LIMITING
# ==========================================================================
if TESTING:
    # Don't use axes in tests (it requires request object)
    AUTHENTICATION_BACKENDS = [
        'django.contrib.auth.backends.ModelBackend',
    ]
else:
    AUTHENTICATION_BACKENDS = [
        'axes.backends.AxesBackend',  # AxesBackend with ModelBackend fallback
        'django.contrib.auth.backends.ModelBackend',
    ]

# Lock out after 5 failed attempts
AXES_FAILURE_LIMIT = 5
# Lock out for 15 minutes
AXES_COOLOFF_TIME = timedelta(minutes=15)
# Lock based on username and IP
AXES_LOCKOUT_PARAMETERS = ['username', 'ip_address']
AXES_RESET_ON_SUCCESS = True
AXES_ENABLED = not TESTING
