"""Processing pipelines exposed by the VoiceFlow backend."""
