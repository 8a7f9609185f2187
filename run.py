#!/usr/bin/env python3
"""
Run script for the VoiceFlow backend
"""
import uvicorn

from voiceflow.config.settings import settings
from voiceflow.main import app

if __name__ == "__main__":
    uvicorn.run(app, host=settings.host, port=settings.port, reload=settings.debug)
