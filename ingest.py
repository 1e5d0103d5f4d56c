#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Разовая индексация руководства тонометра (по умолчанию data/bp.pdf)
в коллекцию Weaviate. Настройки берутся из окружения / .env.

  python ingest.py

Код выхода 0 — успех, 1 — ошибка.
"""

import sys

from bp_rag.indexer import main

if __name__ == "__main__":
    sys.exit(main())
