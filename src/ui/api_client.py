"""HTTP client wrapper for the support bot FastAPI backend."""

from __future__ import annotations

import os

import httpx
import streamlit as st

API_URL = os.getenv("API_URL", "http://localhost:3000")


def check_health() -> bool:
    """Return True if the API server responds to /health."""
    try:
        r = httpx.get(f"{API_URL}/health", timeout=5.0)
        return r.status_code == 200
    except httpx.ConnectError:
        return False


def load_documents(url: str) -> dict:  # type: ignore[type-arg]
    """Ask the backend to crawl and index *url*."""
    try:
        r = httpx.post(f"{API_URL}/api/load-documents", json={"url": url}, timeout=600.0)
        r.raise_for_status()
        return r.json()  # type: ignore[no-any-return]
    except httpx.HTTPError as e:
        st.error(f"Loading documents failed: {e}")
        return {}


def ask(question: str) -> str | None:
    """Send one chat turn; history is kept server-side per caller address."""
    try:
        r = httpx.post(f"{API_URL}/api/chat", json={"question": question}, timeout=120.0)
        r.raise_for_status()
        return r.json().get("response")  # type: ignore[no-any-return]
    except httpx.HTTPError as e:
        st.error(f"Chat failed: {e}")
        return None
