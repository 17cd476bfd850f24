import logging

import cv2
import streamlit as st
from pydantic import ValidationError

from errors import LabelCropError
from label_processor import LabelProcessor, encode_png
from raster_source import PDF_MIME, RasterSource
from schemas import ProcessingSettings
from session import ERROR, PROCESSING, SUCCESS, LabelSession

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

MAX_UPLOAD_MB = 50


# Helper function for Font Awesome icons (more reliable than Lucide in Streamlit)
def fa_icon(name, style="solid", size="sm", color="currentColor"):
    return f'<i class="fa-{style} fa-{name} fa-{size}" style="color: {color};"></i>'


st.set_page_config(
    page_title="Label Cropper",
    page_icon="✂️",
    layout="wide"
)

st.markdown("""
<link rel="stylesheet" href="https://cdnjs.cloudflare.com/ajax/libs/font-awesome/6.4.0/css/all.min.css">
<style>
.stAppHeader {visibility: hidden;}
.stFileUploader > div > div > div > div {
    border: 2px dashed #4F46E5 !important;
    border-radius: 8px !important;
    padding: 20px !important;
}
</style>
""", unsafe_allow_html=True)

# Initialize settings in session state
defaults = ProcessingSettings()
if 'min_area_pct' not in st.session_state:
    st.session_state.min_area_pct = defaults.min_area_ratio * 100
if 'max_area_pct' not in st.session_state:
    st.session_state.max_area_pct = defaults.max_area_ratio * 100
if 'pdf_scale' not in st.session_state:
    st.session_state.pdf_scale = defaults.pdf_scale


def current_settings():
    return ProcessingSettings(
        min_area_ratio=st.session_state.min_area_pct / 100.0,
        max_area_ratio=st.session_state.max_area_pct / 100.0,
        pdf_scale=st.session_state.pdf_scale,
    )


@st.dialog("Processing Settings")
def settings_modal():
    st.session_state.min_area_pct = st.slider(
        "Minimum label area (% of page)",
        min_value=0.0, max_value=50.0, step=0.5,
        value=float(st.session_state.min_area_pct),
        help="Regions smaller than this are treated as text fragments or noise"
    )
    st.session_state.max_area_pct = st.slider(
        "Maximum label area (% of page)",
        min_value=50.0, max_value=100.0, step=0.5,
        value=float(st.session_state.max_area_pct),
        help="Regions larger than this are treated as the whole page"
    )
    st.session_state.pdf_scale = st.select_slider(
        "PDF render scale",
        options=[1.5, 2.0, 2.5, 3.0, 3.5, 4.0],
        value=st.session_state.pdf_scale,
        help="3.0 renders at about 216 DPI; higher is sharper but slower"
    )
    if st.button("Apply Settings", use_container_width=True):
        st.session_state.pop('label_session', None)
        st.rerun()


def get_session():
    if 'label_session' not in st.session_state:
        try:
            settings = current_settings()
        except ValidationError as e:
            st.error(f"Invalid settings: {e}")
            settings = ProcessingSettings()
        st.session_state.label_session = LabelSession(LabelProcessor(settings=settings))
    return st.session_state.label_session


session = get_session()

col_title, col_settings = st.columns([4, 1])
with col_title:
    st.title("Label Cropper")
with col_settings:
    if st.button("Settings", use_container_width=True):
        settings_modal()

st.markdown("Upload a PDF or photo containing a shipping label. It is detected, cropped, "
            "turned upright and resized to 4x6\" thermal format.")

uploaded_file = st.file_uploader(
    "Upload PDF or image",
    type=['pdf', 'png', 'jpg', 'jpeg'],
    help=f"Select a PDF, PNG or JPG file (max {MAX_UPLOAD_MB}MB)"
)

if uploaded_file is not None:
    data = uploaded_file.getvalue()
    file_size = len(data) / (1024 * 1024)
    if file_size > MAX_UPLOAD_MB:
        st.error(f"File too large: {file_size:.1f}MB (max {MAX_UPLOAD_MB}MB)")
        uploaded_file = None
    elif uploaded_file.type == PDF_MIME:
        try:
            pages = RasterSource().page_count(data)
            st.info(f"{pages} page{'s' if pages != 1 else ''}; only page 1 is processed")
        except LabelCropError:
            st.warning("Could not read PDF info")

col1, col2, col3, col4 = st.columns([2, 1, 1, 1])
with col1:
    process_button = st.button(
        "Detect & Crop",
        disabled=(uploaded_file is None or session.status == PROCESSING),
        use_container_width=True,
        type="primary"
    )
with col2:
    rotate_left = st.button("Rotate Left", disabled=session.output is None, use_container_width=True)
with col3:
    rotate_right = st.button("Rotate Right", disabled=session.output is None, use_container_width=True)
with col4:
    reset_button = st.button("Reset", use_container_width=True)

if reset_button:
    session.reset()
    st.rerun()

if process_button and uploaded_file is not None:
    with st.spinner("Analyzing..."):
        session.submit(uploaded_file.getvalue(), uploaded_file.type, uploaded_file.name)

if rotate_left:
    session.rotate("left")
if rotate_right:
    session.rotate("right")

if session.status == ERROR:
    st.error("Detection failed. Could not find a valid shipping label. "
             f"Please ensure the label is clear and not too blurry.\n\n{session.error}")

if session.status == SUCCESS and session.output is not None:
    info = session.result.crop_info()
    st.success(f"Label detected: {info.width}x{info.height}px at ({info.x}, {info.y})")

    tab1, tab2 = st.tabs(["Label Output", "Detection Preview"])
    with tab1:
        st.image(cv2.cvtColor(session.output, cv2.COLOR_BGR2RGB), width=400)
        st.download_button(
            label="Download Label",
            data=encode_png(session.output),
            file_name="label.png",
            mime="image/png",
            use_container_width=True
        )
    with tab2:
        st.image(cv2.cvtColor(session.result.preview, cv2.COLOR_BGR2RGB), use_container_width=True)

with st.expander("Activity log"):
    st.code("\n".join(session.logs) or "-", language=None)

st.markdown("---")
st.markdown(
    "<div style='text-align: center; color: #666;'>"
    "Label Cropper | Built with Streamlit & OpenCV"
    "</div>",
    unsafe_allow_html=True
)
