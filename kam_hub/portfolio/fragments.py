# kam_hub/portfolio/fragments.py
"""
Small Streamlit helpers shared by the portfolio pages.

Flash messages: a page that calls st.rerun() right after an action queues
its feedback in session state; the next run pops and toasts it.
"""

import streamlit as st
from typing import List, MutableMapping, Optional, Tuple

FLASH_KEY = '_portfolio_flash'


def queue_flash(message: str, icon: Optional[str] = None,
                state: MutableMapping = None):
    """Queue a toast for the next script run."""
    state = st.session_state if state is None else state
    pending = list(state.get(FLASH_KEY, []))
    pending.append((message, icon))
    state[FLASH_KEY] = pending


def pop_flash(state: MutableMapping = None) -> List[Tuple[str, Optional[str]]]:
    """Queued messages, oldest first. Empties the queue."""
    state = st.session_state if state is None else state
    return state.pop(FLASH_KEY, [])


def show_flash(state: MutableMapping = None):
    for message, icon in pop_flash(state):
        st.toast(message, icon=icon)
