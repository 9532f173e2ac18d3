# clinic_dashboard/ui/pages/06_Storage.py
"""
Storage page

Storage quota overview, per-category breakdown and file management
(search, sort, upload within the quota, delete).
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
import plotly.express as px
from typing import Any, Dict, List, Optional

from clinic_dashboard.utils.logging_config import get_logger, setup_logging
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    FILE_CATEGORY_LABELS,
    INFO_MESSAGES,
    LABELS,
    MAX_ATTACHMENT_SIZE_MB,
    get_streamlit_config,
    is_debug_mode,
)
from clinic_dashboard.core.records import format_datetime
from clinic_dashboard.core.storage import (
    category_label,
    filter_and_sort_files,
    format_file_size,
    is_large_file,
    storage_breakdown_rows,
    storage_file_stats,
)
from clinic_dashboard.core.subscription.gating import check_upload_file
from clinic_dashboard.core.subscription.models import FileCategory, Subscription, UsageMetrics
from clinic_dashboard.core.subscription.usage import format_gb, storage_level
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.infrastructure.auth.session_auth import require_login
from clinic_dashboard.ui.components import (
    handle_api_error,
    render_blocked,
    render_page_chrome,
    show_result,
)

# Initialize logging
setup_logging()
logger = get_logger(__name__)

LEVEL_MESSAGES = {
    "near_limit": (st.warning, "⚠️ You are close to your storage limit."),
    "critical": (st.error, "🚨 Storage almost full. Uploads may fail."),
}


# =============================================================================
# APP CONFIGURATION
# =============================================================================


def setup_storage_app() -> None:
    """Configure Streamlit app for the storage page"""
    logger.info("Setting up storage page...")

    try:
        config = get_streamlit_config()
        config["page_title"] = "Storage"
        st.set_page_config(**config)

    except Exception as e:
        logger.error(f"Failed to setup storage page: {str(e)}")
        st.error(f"❌ Storage page setup failed: {str(e)}")
        st.stop()


# =============================================================================
# OVERVIEW
# =============================================================================


def render_overview(usage: Optional[UsageMetrics], files: List[Dict[str, Any]]) -> None:
    st.subheader("💾 Overview")

    with st.container(border=True):
        if usage is None:
            st.info("Usage data is not available right now.")
            return

        storage = usage.storage
        percent = storage.used_gb / storage.limit_gb * 100 if storage.limit_gb else 0
        stats = storage_file_stats(files)

        col1, col2, col3, col4 = st.columns(4)
        with col1:
            st.metric("Used", format_gb(storage.used_gb))
        with col2:
            st.metric("Plan limit", format_gb(storage.limit_gb))
        with col3:
            st.metric("Files", stats["total_files"])
        with col4:
            st.metric("Large files", stats["large_files"])

        st.progress(min(percent, 100) / 100, text=f"{percent:.1f}% used")

        level = storage_level(percent)
        if level in LEVEL_MESSAGES:
            render, message = LEVEL_MESSAGES[level]
            render(message)

        rows = storage_breakdown_rows(storage)
        if any(row["gb"] for row in rows):
            fig = px.bar(
                rows,
                x="label",
                y="gb",
                title="Usage by category (GB)",
                labels={"label": "Category", "gb": "GB"},
            )
            fig.update_layout(height=280)
            st.plotly_chart(fig, use_container_width=True)


# =============================================================================
# FILES
# =============================================================================


def render_upload(
    client: ApiClient, subscription: Optional[Subscription], usage: Optional[UsageMetrics]
) -> None:
    with st.expander(LABELS["upload_file"]):
        uploaded = st.file_uploader(f"File (max {MAX_ATTACHMENT_SIZE_MB} MB)", key="storage_upload")
        if uploaded is None or not st.button("⬆️ Upload", type="primary"):
            return

        if uploaded.size > MAX_ATTACHMENT_SIZE_MB * 1024 * 1024:
            st.error(f"⚠️ Files larger than {MAX_ATTACHMENT_SIZE_MB} MB are not accepted")
            return

        check = check_upload_file(subscription, usage, uploaded.name, uploaded.size)
        if not check.allowed:
            render_blocked(check, "storage_upload")
            return

        show_result(
            *queries.upload_file(
                client,
                uploaded.name,
                uploaded.getvalue(),
                uploaded.type or "application/octet-stream",
                FileCategory.ATTACHMENT.value,
            )
        )


def render_file_list(client: ApiClient, files: List[Dict[str, Any]]) -> None:
    st.subheader("📁 Files")

    col1, col2, col3, col4 = st.columns([3, 2, 1, 1])
    with col1:
        search = st.text_input("🔍 Search", placeholder="File name or category")
    with col2:
        category = st.selectbox(
            "Category",
            options=["all"] + list(FILE_CATEGORY_LABELS),
            format_func=lambda c: "All" if c == "all" else category_label(c),
        )
    with col3:
        sort_by = st.selectbox("Sort by", options=["size", "date"], format_func=str.title)
    with col4:
        sort_order = st.selectbox(
            "Order", options=["desc", "asc"], format_func=lambda o: "↓" if o == "desc" else "↑"
        )

    visible = filter_and_sort_files(files, search, category, sort_by, sort_order)
    if not visible:
        st.info(INFO_MESSAGES["no_files"])
        return

    for file in visible:
        with st.container(border=True):
            col1, col2, col3 = st.columns([4, 2, 1])
            with col1:
                flag = " 🐘" if is_large_file(file) else ""
                st.write(f"**{file.get('fileName')}**{flag}")
                st.caption(
                    f"{category_label(file.get('category'))} · "
                    f"{format_datetime(file.get('createdAt'))}"
                )
            with col2:
                st.write(format_file_size(file.get("fileSize")))
            with col3:
                if st.button("🗑️", key=f"delete_file_{file['id']}", help="Delete file"):
                    show_result(*queries.delete_file(client, file["id"]))


# =============================================================================
# MAIN
# =============================================================================


def load_files(client: ApiClient) -> Optional[List[Dict[str, Any]]]:
    """Storage files, or None when the backend has no storage endpoints"""
    try:
        return queries.fetch_storage_files(client, client.tenant_id)
    except ApiError as e:
        if e.status_code in (404, 501):
            st.info(INFO_MESSAGES["storage_unavailable"])
        else:
            handle_api_error(e, "load storage files")
        return None


def main() -> None:
    """Main storage page entry point"""
    logger.info("Starting storage page...")

    try:
        setup_storage_app()
        client, _ = require_login()
        subscription, usage = render_page_chrome(client)

        st.title("💾 Storage")
        files = load_files(client)

        render_overview(usage, files or [])
        if files is None:
            return

        render_upload(client, subscription, usage)
        render_file_list(client, files)

    except Exception as e:
        logger.error(f"Critical error in storage page: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
