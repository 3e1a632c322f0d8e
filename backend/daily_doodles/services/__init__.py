# Services package init
"""
Daily Doodles Backend — Services Layer
========================================

What:  The only code that touches external services.

Service Inventory:
    - StorageService:        Supabase auth + `profiles`/`entries` tables
    - JournalAIService:      abstract AI interface
    - GeminiService:         Gemini prompts, analysis, live transcription
    - TranscriptionSession:  stream wrapper around one Live API connection
    - audio:                 float frames → base64 PCM chunks
"""
