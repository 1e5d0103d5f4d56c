#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Ассистент по руководству тонометра: ядро в пакете `bp_rag`,
FastAPI-приложение (POST /chat) в `app/main.py`.

Перед первым запуском постройте индекс:
  python ingest.py

Запуск сервера:
  uvicorn app.main:app --host 0.0.0.0 --port 8000

Этот файл служит тонким лаунчером для удобного запуска uvicorn.
"""

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=False)
