"""Default files written by 'vocabweave init'."""

DEFAULT_CONFIG_YAML = """\
# VocabWeave configuration.
# Strings must use single quotes.

provider: 'openai'
providers:
  openai:
    api_key: 'YOUR_API_KEY'
    model: 'deepseek-chat'
    base_url: 'https://api.deepseek.com'
  gemini:
    api_key: 'YOUR_GEMINI_API_KEY'
    model: 'gemini-flash-lite-latest'

native_language: 'zh-CN'
target_language: 'en'
difficulty_level: 'B1'
intensity: 'medium'
process_mode: 'both'
translation_style: 'translation-original'
cache_max_size: 2000

site_mode: 'all'
excluded_sites: []
allowed_sites: []

learned_words: []
memorize_list: []

scheduler:
  batch_size: 20
  concurrency: 3
  inter_batch_delay: 0.05
  debounce: 0.1
  viewport_margin: 500
"""
