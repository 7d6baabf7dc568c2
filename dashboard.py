"""
Stroke Prediction: Interactive Form
===================================

A Streamlit front end over the Random Forest trained by main.py:
1. Enter a patient's gender, age, glucose, BMI and smoking status
2. Submit to see "Stroke Prediction: <label>" and the stroke probability
3. Optionally score a CSV of patients

Run with:
    streamlit run dashboard.py

A model saved under a non-default --output-dir is picked up with:
    STROKE_MODEL_PATH=<output-dir>/model/random_forest_stroke_model.joblib streamlit run dashboard.py
"""

import io
import warnings

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from stroke_analysis.config import AGE_RANGE, FORM_CHOICES, LABELS, MODEL_PATH_ENV
from stroke_analysis.model import load_model
from stroke_analysis.prediction import (
    PredictionError,
    StrokePredictor,
    format_prediction,
    predict_stroke,
    resolve_model_path,
)

warnings.filterwarnings('ignore')

# =============================================================================
# PAGE CONFIGURATION
# =============================================================================

st.set_page_config(
    page_title="Stroke Prediction",
    page_icon="🧠",
    layout="wide",
    initial_sidebar_state="expanded"
)

# =============================================================================
# CACHED RESOURCE LOADERS
# =============================================================================

@st.cache_resource
def load_form_model(model_path):
    """Load the trained Random Forest and its training info (cached per path)."""
    if not model_path.exists():
        return None, None
    return load_model(model_path)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def create_gauge_chart(probability: float) -> go.Figure:
    """Create a Plotly gauge chart for the stroke probability."""

    color = '#e74c3c' if probability >= 0.5 else '#27ae60'

    fig = go.Figure(go.Indicator(
        mode="gauge+number",
        value=probability * 100,
        number={'suffix': '%', 'font': {'size': 48}},
        title={'text': "Predicted Stroke Probability", 'font': {'size': 22}},
        gauge={
            'axis': {'range': [0, 100], 'tickwidth': 2},
            'bar': {'color': color, 'thickness': 0.75},
            'bgcolor': "white",
            'borderwidth': 2,
            'bordercolor': "gray",
            'steps': [
                {'range': [0, 50], 'color': '#d5f5e3'},
                {'range': [50, 100], 'color': '#f5b7b1'}
            ],
            'threshold': {
                'line': {'color': "black", 'width': 4},
                'thickness': 0.8,
                'value': 50
            }
        }
    ))

    fig.update_layout(
        height=300,
        margin=dict(l=20, r=20, t=60, b=20),
        font={'family': "Arial"}
    )

    return fig


# =============================================================================
# MAIN DASHBOARD
# =============================================================================

def main():
    """Main dashboard function."""

    model_path = resolve_model_path()
    model, training_info = load_form_model(model_path)

    if model is None:
        st.error(
            f"Could not load the model at `{model_path}`. Train it first by running "
            f"`python main.py`, or set `{MODEL_PATH_ENV}` to the model saved under `--output-dir`."
        )
        st.stop()

    st.title("🧠 Stroke Prediction")
    st.markdown(f"""
    Enter a patient's details and submit to get the **{model.name}** prediction.
    Fields not collected here are filled with the most common training values.
    """)

    # ==========================================================================
    # SIDEBAR: PATIENT INPUT FORM
    # ==========================================================================

    st.sidebar.header("📋 Patient Information")

    with st.sidebar.form("patient_form"):
        gender = st.selectbox("Gender", FORM_CHOICES['gender'])
        age = st.number_input(
            "Age", min_value=AGE_RANGE[0], max_value=AGE_RANGE[1], value=50.0, step=1.0
        )
        avg_glucose_level = st.number_input(
            "Average Glucose Level (mg/dL)", min_value=0.0, value=100.0
        )
        bmi = st.number_input("BMI", min_value=0.1, value=28.0)
        smoking_status = st.selectbox("Smoking Status", FORM_CHOICES['smoking_status'])

        submitted = st.form_submit_button("🔍 Predict", use_container_width=True)

    tab1, tab2, tab3 = st.tabs(["📊 Single Patient", "📁 Batch Processing", "ℹ️ Model Info"])

    # --------------------------------------------------------------------------
    # TAB 1: SINGLE PATIENT
    # --------------------------------------------------------------------------

    with tab1:
        if submitted:
            patient_data = {
                'gender': gender,
                'age': age,
                'avg_glucose_level': avg_glucose_level,
                'bmi': bmi,
                'smoking_status': smoking_status,
            }

            try:
                result = predict_stroke(model, patient_data)
            except PredictionError as e:
                st.error(f"Prediction error: {e}")
            else:
                st.subheader(format_prediction(result['prediction']))

                col1, col2 = st.columns([1, 1])
                with col1:
                    st.plotly_chart(create_gauge_chart(result['probability']),
                                    use_container_width=True)
                with col2:
                    st.metric("Predicted Label", result['prediction_label'])
                    st.markdown("**Record scored:**")
                    st.json(result['record'])
        else:
            st.info("👈 Enter patient information in the sidebar and click **Predict**.")

    # --------------------------------------------------------------------------
    # TAB 2: BATCH PROCESSING
    # --------------------------------------------------------------------------

    with tab2:
        st.subheader("📁 Batch Patient Processing")
        st.markdown("Upload a CSV with columns gender, age, avg_glucose_level, bmi, smoking_status.")

        uploaded_file = st.file_uploader("Upload Patient CSV", type=['csv'])

        if uploaded_file is not None:
            batch_df = pd.read_csv(uploaded_file)
            st.success(f"Loaded {len(batch_df)} patients")

            if st.button("🚀 Run Batch Predictions", use_container_width=True):
                results_df = StrokePredictor(trained=model).predict_batch(batch_df)
                results_df['prediction_label'] = results_df['prediction'].map(LABELS)

                n_errors = results_df['error'].notna().sum()
                col1, col2, col3 = st.columns(3)
                col1.metric("Total Patients", len(results_df))
                col2.metric("Predicted Stroke", int((results_df['prediction'] == 1).sum()))
                col3.metric("Rejected Records", int(n_errors))

                st.dataframe(results_df, use_container_width=True)

                csv_buffer = io.StringIO()
                results_df.to_csv(csv_buffer, index=False)
                st.download_button(
                    label="📥 Download Results CSV",
                    data=csv_buffer.getvalue(),
                    file_name="stroke_predictions.csv",
                    mime="text/csv",
                    use_container_width=True
                )

    # --------------------------------------------------------------------------
    # TAB 3: MODEL INFORMATION
    # --------------------------------------------------------------------------

    with tab3:
        st.subheader("ℹ️ Model Information")
        st.markdown(f"- **Algorithm**: {model.name}")
        st.markdown(f"- **Best parameters**: `{model.best_params}`")
        st.markdown(f"- **5-fold CV accuracy**: {model.cv_accuracy:.3f}")

        if training_info:
            st.markdown(f"- **Training samples**: {training_info['train_size']:,}")
            st.markdown(f"- **Test samples**: {training_info['test_size']:,}")
            st.markdown("### Test-Set Comparison")
            st.dataframe(training_info['comparison'].round(4), use_container_width=True)

        if model.feature_importance is not None:
            st.markdown("### Feature Importance")
            st.bar_chart(model.feature_importance.set_index('feature')['importance'].head(15))

    st.markdown("---")
    st.caption("For educational and demonstration purposes only. Not a diagnostic tool.")


if __name__ == "__main__":
    main()
