"""Dashboard component"""
import streamlit as st
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.resources import get_dataset
from services.calculated_fields import CalculatedFieldRegistry
from services.constants import DEFAULT_SORT_METRIC
from services.data_loader import get_metadata
from services.visualization_logic import ChartBuilder, format_header, result_to_frame
from services.utils import to_number

class Dashboard:
    """Overview of the loaded dataset"""

    def __init__(self):
        self.registry = CalculatedFieldRegistry()

    def render_dashboard(self) -> None:
        """Render the dashboard interface"""
        st.markdown("### 📈 Dashboard")

        try:
            dataset = get_dataset()
            metadata = get_metadata(dataset)

            if not metadata["metrics"]:
                st.warning("The dataset has no rows. Check the export file and reload.")
                return

            st.caption("Metrics: " + ", ".join(format_header(m) for m in metadata["metrics"]))

            # Chart of the default ranking metric
            column = dataset.column_for(DEFAULT_SORT_METRIC)
            if column:
                rows = sorted(
                    (r for r in dataset.rows if to_number(r.get(column)) is not None),
                    key=lambda r: to_number(r.get(column)),
                    reverse=True,
                )
                st.plotly_chart(ChartBuilder.create_bar_figure(rows, column, format_header(column)),
                                use_container_width=True)

            # Full table with the default calculated fields
            self.registry.initialize_default_fields(dataset.metric_columns)
            enriched = dataset.with_calculated_fields(self.registry)
            with st.expander("📋 View Dataset"):
                st.dataframe(result_to_frame(list(enriched.rows)), hide_index=True, use_container_width=True)
                for field in self.registry.get_calculated_fields().values():
                    st.caption(f"**{format_header(field.name)}**: {field.description}")

        except FileNotFoundError as e:
            st.error(f"Dataset not found: {e}")
        except Exception as e:
            st.error("Error loading dashboard")
            with st.expander("See error details"):
                st.exception(e)
