"""Site Support Bot -- Streamlit UI.

Two pages: load a website into the index, and chat with the bot about it.
"""

from __future__ import annotations

import streamlit as st

from src.ui.api_client import ask, check_health, load_documents

st.set_page_config(page_title="Site Support Bot", layout="wide")

with st.sidebar:
    st.title("Site Support Bot")
    st.markdown("---")

    page = st.radio(
        "Navigate",
        ["Chat", "Load Documents"],
        label_visibility="collapsed",
    )

    st.markdown("---")

    api_healthy = check_health()
    if api_healthy:
        st.markdown(":green_circle: API connected")
    else:
        st.markdown(":red_circle: API unreachable")

# ---------------------------------------------------------------------------
# Page: Load Documents
# ---------------------------------------------------------------------------
if page == "Load Documents":
    st.header("Load Documents")
    st.write("Crawl a website and index its pages for question answering.")

    url = st.text_input("Seed URL", placeholder="https://example.com/docs")

    if st.button("Load", disabled=not url):
        if not api_healthy:
            st.error("Cannot load: the API server is not reachable.")
        else:
            with st.spinner("Crawling, chunking and embedding..."):
                result = load_documents(url)
            if result.get("success"):
                st.success(f"Indexed {result.get('chunk_count', 0)} chunks.")

# ---------------------------------------------------------------------------
# Page: Chat
# ---------------------------------------------------------------------------
else:
    st.header("Chat")

    if "messages" not in st.session_state:
        st.session_state.messages = []

    for role, text in st.session_state.messages:
        with st.chat_message(role):
            st.markdown(text)

    question = st.chat_input("Ask a question")
    if question:
        st.session_state.messages.append(("user", question))
        with st.chat_message("user"):
            st.markdown(question)
        with st.spinner("Thinking..."):
            answer = ask(question) if api_healthy else None
        if answer is not None:
            st.session_state.messages.append(("assistant", answer))
            with st.chat_message("assistant"):
                st.markdown(answer)
        elif not api_healthy:
            st.error("Cannot chat: the API server is not reachable.")
