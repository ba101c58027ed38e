"""Front-end backends for the presenter's capability interface.

WHY: The presenter never talks to widgets or terminals directly; it calls
a View. Each front end ships its own View implementation.

HOW: base.py defines the View ABC, console.py the text backend and the
interactive shell. The tkinter window lives in scripted.gui.
"""
