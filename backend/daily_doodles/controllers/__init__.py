"""
Daily Doodles Backend — Controllers
=====================================

What:  Per-session UI state and the actions that change it.

Controller Inventory:
    - ViewController: the five-view state machine (one per browser session)
    - AuthForm:       login / sign-up submission
    - Dashboard:      entry list, reflective prompt, stats, delete
    - Editor:         draft fields, analyze, save, dictation
    - VoiceCapture:   microphone → transcription session → editor content

Controllers never talk to Supabase or Gemini directly; they go through the
StorageService and JournalAIService handles they are given.
"""
