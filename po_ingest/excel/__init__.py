"""Source workbook / CSV decoding."""
