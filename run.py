#!/usr/bin/env python3
"""
Run script for the TTS Reader API
"""
import uvicorn

from tts_reader.config.settings import settings

if __name__ == "__main__":
    uvicorn.run(
        "tts_reader.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
