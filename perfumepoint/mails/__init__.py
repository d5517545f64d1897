from pathlib import Path


MESSAGE_TEMPLATE_PATH = Path(__file__).resolve().parent / 'templates'
