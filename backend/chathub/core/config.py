"""
Configuration management.
"""
import os
from decimal import Decimal
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent

# Django settings
SECRET_KEY = os.getenv('DJANGO_SECRET_KEY', 'django-insecure-change-this-in-production')
DEBUG = os.getenv('DEBUG', 'True') == 'True'
ALLOWED_HOSTS = [h.strip() for h in os.getenv('ALLOWED_HOSTS', '*').split(',') if h.strip()]

# Database configuration
DB_ENGINE = os.getenv('DB_ENGINE', 'django.db.backends.postgresql')
DB_NAME = os.getenv('DB_NAME', 'chathub_db')
DB_USER = os.getenv('DB_USER', 'postgres')
DB_PASSWORD = os.getenv('DB_PASSWORD', 'postgres')
DB_HOST = os.getenv('DB_HOST', 'db')
DB_PORT = os.getenv('DB_PORT', '5432')

# Provider credentials
OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', '')
ANTHROPIC_API_KEY = os.getenv('ANTHROPIC_API_KEY', '')
GOOGLE_API_KEY = os.getenv('GOOGLE_API_KEY', '')
DEEPSEEK_API_KEY = os.getenv('DEEPSEEK_API_KEY', '')
DEEPSEEK_BASE_URL = os.getenv('DEEPSEEK_BASE_URL', 'https://api.deepseek.com')

# Langfuse configuration
LANGFUSE_ENABLED = os.getenv('LANGFUSE_ENABLED', 'false').lower() == 'true'
LANGFUSE_PUBLIC_KEY = os.getenv('LANGFUSE_PUBLIC_KEY', '')
LANGFUSE_SECRET_KEY = os.getenv('LANGFUSE_SECRET_KEY', '')
LANGFUSE_BASE_URL = os.getenv('LANGFUSE_BASE_URL', 'https://cloud.langfuse.com')

# Stripe configuration
STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY', '')
STRIPE_WEBHOOK_SECRET = os.getenv('STRIPE_WEBHOOK_SECRET', '')
FREE_TIER_REF = 'free_tier'

# Billing
MINIMUM_CREDITS = Decimal(os.getenv('MINIMUM_CREDITS', '0.1'))
SUMMARY_THRESHOLD = int(os.getenv('SUMMARY_THRESHOLD', '10'))
ASSISTANT_TIMESTAMP_OFFSET_SECONDS = 1

# Streaming replay of complete responses
STREAM_REPLAY_CHUNK_SIZE = int(os.getenv('STREAM_REPLAY_CHUNK_SIZE', '5'))
STREAM_REPLAY_DELAY_SECONDS = float(os.getenv('STREAM_REPLAY_DELAY_MS', '15')) / 1000

# Concrete provider model ids behind each public model name
CHATGPT_MODEL_ID = os.getenv('CHATGPT_MODEL_ID', 'gpt-4o')
CLAUDE_MODEL_ID = os.getenv('CLAUDE_MODEL_ID', 'claude-3-5-sonnet-latest')
GEMINI_MODEL_ID = os.getenv('GEMINI_MODEL_ID', 'gemini-1.5-pro')
DEEPSEEK_MODEL_ID = os.getenv('DEEPSEEK_MODEL_ID', 'deepseek-chat')
