# Routes package init
"""
Daily Doodles Backend — API Routes
====================================

Route Inventory:
    - session.py:    GET /api/session, POST /api/session/{mount,navigate,logout}
    - auth.py:       POST /api/auth/login, POST /api/auth/signup
    - dashboard.py:  GET /api/dashboard, POST /api/dashboard/prompt,
                     DELETE /api/entries/{id}
    - editor.py:     POST/GET/PATCH /api/editor,
                     POST /api/editor/{analyze,save,cancel},
                     WS /api/editor/voice
    - health.py:     GET /health

Routes stay thin: resolve the browser's controller, call one controller
method, turn the resulting state into a schema. Behaviour lives in
daily_doodles.controllers.
"""
