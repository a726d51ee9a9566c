import os
from dotenv import load_dotenv

load_dotenv()


def _default_cors_origins(env: str) -> list:
    if env == 'production':
        return ['https://your-frontend-domain.com']
    return ['http://localhost:3000', 'http://localhost:5173']


def _split(value: str) -> list:
    return [item.strip() for item in value.split(',') if item.strip()]


class Settings:
    APP_ENV = os.environ.get('APP_ENV', 'development')

    # Accept both names; MONGODB_URI is what older deployments export
    DATABASE_URL = os.environ.get('DATABASE_URL') or os.environ.get('MONGODB_URI') or 'mongodb://localhost:27017'
    DATABASE_NAME = os.environ.get('DATABASE_NAME', 'coaching_cms')

    JWT_SECRET = os.environ.get('JWT_SECRET') or 'dev-secret-key-change-me'
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRE_MINUTES = int(os.environ.get('JWT_EXPIRE_MINUTES', 60 * 24 * 7))

    CORS_ORIGINS = _split(os.environ.get('CORS_ORIGINS', '')) or _default_cors_origins(APP_ENV)

    RATE_LIMIT_WINDOW_SECONDS = int(os.environ.get('RATE_LIMIT_WINDOW_SECONDS', 15 * 60))
    RATE_LIMIT_MAX = int(os.environ.get('RATE_LIMIT_MAX', 100))

    CLOUDINARY_URL = os.environ.get('CLOUDINARY_URL')
    CLOUDINARY_CLOUD_NAME = os.environ.get('CLOUDINARY_CLOUD_NAME')
    CLOUDINARY_API_KEY = os.environ.get('CLOUDINARY_API_KEY')
    CLOUDINARY_API_SECRET = os.environ.get('CLOUDINARY_API_SECRET')
    MEDIA_FOLDER = os.environ.get('MEDIA_FOLDER', 'coaching-cms')
    UPLOAD_DIR = os.environ.get('UPLOAD_DIR') or os.path.join(os.getcwd(), 'uploads')
    MAX_UPLOAD_BYTES = int(os.environ.get('MAX_UPLOAD_BYTES', 5 * 1024 * 1024))

    PORT = int(os.environ.get('PORT', 5000))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    @property
    def cloudinary_enabled(self) -> bool:
        return bool(self.CLOUDINARY_URL or (
            self.CLOUDINARY_CLOUD_NAME and self.CLOUDINARY_API_KEY and self.CLOUDINARY_API_SECRET
        ))


settings = Settings()
