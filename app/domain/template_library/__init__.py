# Template and policy document loading
from .loader import load_clinic_policy, load_template, template_checksum

__all__ = ["load_clinic_policy", "load_template", "template_checksum"]
