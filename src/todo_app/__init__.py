"""
Todo web application package.

The FastAPI app lives in ``todo_app.main``; import it from there so that
importing the package has no side effects.
"""
