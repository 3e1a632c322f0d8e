"""
Daily Doodles Backend — View Enumeration
==========================================

The closed set of screens the ViewController can be showing. The value is
transient: it lives only as long as the browser session.
"""

from enum import Enum


class View(str, Enum):
    HOME = "home"
    LOGIN = "login"
    SIGNUP = "signup"
    DASHBOARD = "dashboard"
    EDITOR = "editor"
