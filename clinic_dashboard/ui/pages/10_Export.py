# clinic_dashboard/ui/pages/10_Export.py
"""
Excel Export page

Download clinic data (patients, appointments, tasks) as a formatted Excel
workbook. Only available on plans that include data export.
"""

import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

import streamlit as st
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from clinic_dashboard.utils.logging_config import get_logger, setup_logging
from clinic_dashboard.utils.config import (
    ERROR_MESSAGES,
    get_streamlit_config,
    is_debug_mode,
)
from clinic_dashboard.core.export import (
    DATASETS,
    EXCEL_MIME,
    ExportError,
    generate_export_bytes,
    generate_export_filename,
)
from clinic_dashboard.core.subscription.models import Subscription
from clinic_dashboard.infrastructure.api import queries
from clinic_dashboard.infrastructure.api.client import ApiClient, ApiError
from clinic_dashboard.infrastructure.auth.session_auth import current_tenant, require_login
from clinic_dashboard.ui.components import (
    handle_api_error,
    render_feature_gate,
    render_page_chrome,
)

# Initialize logging
setup_logging()
logger = get_logger(__name__)

EXPORT_FILE_KEY = "export_file"


# =============================================================================
# APP CONFIGURATION
# =============================================================================


def setup_export_app() -> None:
    """Configure Streamlit app for export page"""
    logger.info("Setting up export page...")

    try:
        config = get_streamlit_config()
        config["page_title"] = "Excel Export"
        st.set_page_config(**config)

    except Exception as e:
        logger.error(f"Failed to setup export page: {str(e)}")
        st.error(f"❌ Export page setup failed: {str(e)}")
        st.stop()


# =============================================================================
# EXPORT OPTIONS
# =============================================================================


def render_export_options() -> Tuple[List[str], date, date]:
    """
    Dataset selection and the appointment date range.

    Returns:
        Tuple of (datasets, date_from, date_to)
    """
    with st.container(border=True):
        datasets = st.multiselect(
            "Include",
            options=list(DATASETS),
            default=list(DATASETS),
            format_func=lambda key: DATASETS[key][0],
        )

        col1, col2 = st.columns(2)
        with col1:
            date_from = st.date_input("Appointments from", value=date.today() - timedelta(days=30))
        with col2:
            date_to = st.date_input("Appointments to", value=date.today())

    return datasets, date_from, date_to


def load_export_data(
    client: ApiClient,
    user_id: str,
    datasets: List[str],
    date_from: date,
    date_to: date,
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Fetch the selected datasets.

    Raises:
        ApiError: If any dataset cannot be loaded
    """
    logger.info(f"Loading export data: {datasets} ({date_from} - {date_to})")
    loaders = {
        "patients": lambda: queries.fetch_patients(client, client.tenant_id),
        "appointments": lambda: queries.fetch_appointments(
            client, client.tenant_id, date_from.isoformat(), date_to.isoformat()
        ),
        "tasks": lambda: queries.fetch_tasks(client, client.tenant_id, user_id),
    }
    return {key: loaders[key]() for key in datasets}


def render_generate(
    client: ApiClient, user_id: str, subscription: Optional[Subscription]
) -> None:
    datasets, date_from, date_to = render_export_options()

    if date_from > date_to:
        st.error("⚠️ The start date must be before the end date")
        return

    if st.button("📊 Generate Excel", type="primary", disabled=not datasets):
        tenant = current_tenant() or {}
        try:
            with st.spinner("Generating export..."):
                data = load_export_data(client, user_id, datasets, date_from, date_to)
                excel_file = generate_export_bytes(
                    subscription, tenant.get("name") or "Clinic", data
                )
        except ApiError as e:
            handle_api_error(e, "load export data")
            return
        except ExportError as e:
            st.error(f"❌ {e}")
            return

        st.session_state[EXPORT_FILE_KEY] = (
            excel_file.getvalue(),
            generate_export_filename(tenant.get("slug") or "clinic"),
            {key: len(records) for key, records in data.items()},
        )

    render_download()


def render_download() -> None:
    export = st.session_state.get(EXPORT_FILE_KEY)
    if export is None:
        return

    content, file_name, counts = export
    st.success(
        "✅ Export ready: "
        + ", ".join(f"{count} {DATASETS[key][0].lower()}" for key, count in counts.items())
    )
    st.download_button(
        label="⬇️ Download Excel",
        data=content,
        file_name=file_name,
        mime=EXCEL_MIME,
        type="primary",
    )


# =============================================================================
# MAIN
# =============================================================================


def main() -> None:
    """Main export page entry point"""
    logger.info("Starting export page...")

    try:
        setup_export_app()
        client, user = require_login()
        subscription, _ = render_page_chrome(client)

        st.title("📤 Excel Export")
        if not render_feature_gate(subscription, "data_export", "export_gate"):
            return

        render_generate(client, user["id"], subscription)

    except Exception as e:
        logger.error(f"Critical error in export page: {str(e)}")
        st.error(ERROR_MESSAGES["load_failed"])

        if is_debug_mode():
            st.exception(e)


if __name__ == "__main__":
    main()
