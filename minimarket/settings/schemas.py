"""
Schemas for the shop settings.
"""
import os

from pydantic import BaseModel, Field


class GeneralSettings(BaseModel):
    storeName: str = "Mini Market"
    address: str = ""
    phone: str = ""
    email: str = ""
    currency: str = Field(default_factory=lambda: os.environ.get("DEFAULT_CURRENCY", "USD"))


class ReceiptSettings(BaseModel):
    headerText: str = "Thank you for shopping at Mini Market!"
    footerText: str = "Please come again!"
    showLogo: bool = True
    printReceipt: bool = True
    emailReceipt: bool = False


class TaxSettings(BaseModel):
    enableTax: bool = False
    taxRate: float = 0.0
    taxName: str = "Sales Tax"
    taxIncluded: bool = False


class PreferenceSettings(BaseModel):
    theme: str = "light"
    language: str = "en"
    dateFormat: str = "MM/DD/YYYY"
    timeFormat: str = "12h"


class AllSettings(BaseModel):
    """Every settings section, each falling back to its defaults."""
    general: GeneralSettings = Field(default_factory=GeneralSettings)
    receipt: ReceiptSettings = Field(default_factory=ReceiptSettings)
    tax: TaxSettings = Field(default_factory=TaxSettings)
    preferences: PreferenceSettings = Field(default_factory=PreferenceSettings)
