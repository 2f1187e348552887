"""Streamlit entrypoint for the form studio, delegating to the Home page."""

from importlib import import_module

import streamlit as st


def main() -> None:
    """Render the Home page when the app entrypoint is loaded."""

    try:
        home_module = import_module("Home")
    except ModuleNotFoundError:
        st.error("Form studio home page could not be found.")
        return

    render = getattr(home_module, "main", None)
    if render is None:
        st.error("Form studio home page has no main() function.")
        return

    render()


if __name__ == "__main__":
    main()
