"""Ассистент по руководству тонометра (RAG + вызов инструментов).

Содержит:
- config: dataclass-конфиги и настройки из окружения (pydantic-settings)
- chunker: нарезка страниц на чанки с перекрытием
- embeddings: адаптер LlamaIndex BaseEmbedding для OpenAI‑совместимого API
- vectorstore: клиент Weaviate и коллекция чанков
- indexer: загрузка PDF, чанкинг, эмбеддинги и запись в хранилище
- retry: повтор вызовов модели при исчерпании квоты
- tools: реестр инструментов, доступных модели
- memory: ограниченная история диалога по пользователям
- llm: клиент Chat Completions API
- engine: оркестратор хода диалога
"""
