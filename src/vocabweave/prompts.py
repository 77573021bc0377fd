"""Prompt templates sent to the translation provider."""

SYSTEM_PROMPT = "You are a professional language-learning assistant. Always answer with valid JSON."

VOCABULARY_PROMPT_TEMPLATE = """You are a language-learning assistant. Analyse the text below and pick vocabulary worth learning, then translate it.

## Rules
1. Pick about {target_count} terms. You may adapt the number to the text, but never return more than {max_count}.
2. Do not translate: domains, addresses, abbreviations, person names, place names, product names, numbers, code, URLs, or words already in the target language.
3. Prefer terms with real learning value and a spread of difficulty levels.
4. Translate from {source_lang} to {target_lang}.
5. Use the single most fitting meaning in context, so the mixed sentence stays easy to read.

## CEFR levels from easiest to hardest: A1, A2, B1, B2, C1, C2

## Output format
A JSON array whose elements have:
- original: the term exactly as it appears in the text
- translation: the translation
- phonetic: pronunciation in the learning language ({learning_lang})
- difficulty: CEFR level (A1/A2/B1/B2/C1/C2), assessed carefully
- position: start offset of the term in the text

## Text
{text}

## Output
Return only the JSON array, nothing else."""

SPECIFIC_WORDS_PROMPT_TEMPLATE = """You are a language-learning assistant. Translate the following terms.

## Rules
1. Translate every term given. Do not skip any.
2. If a term is in {source_lang}, translate it to {target_lang}, and the other way round.

## CEFR levels from easiest to hardest: A1, A2, B1, B2, C1, C2

## Output format
A JSON array whose elements have:
- original: the term
- translation: the translation
- phonetic: pronunciation in the learning language ({learning_lang})
- difficulty: CEFR level (A1/A2/B1/B2/C1/C2)

## Terms
{words}

## Output
Return only the JSON array, nothing else."""
