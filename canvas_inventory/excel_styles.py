"""Excel styling for the inventory workbook - theme, borders, header and row formatting"""

from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from .inventory_models import Config

class ExcelTheme:
    """
     Workbook colour palette
    """

    HEADER_BG = "2F5496"           # Professional Blue
    HEADER_TEXT = "FFFFFF"         # White

    ROW_EVEN = "FFFFFF"            # White
    ROW_ODD = "F2F2F2"             # Light Gray

    ERROR_BG = "FFE6E6"            # Light Red
    SUMMARY_BG = "E7F3FF"          # Very Light Blue

    BORDER_DARK = "404040"         # Dark Gray
    BORDER_LIGHT = "D0D0D0"        # Light Gray

def _solid(color: str) -> PatternFill:
    return PatternFill(start_color=color, end_color=color, fill_type='solid')

def format_sheet(worksheet, freeze_panes: bool = True, auto_filter: bool = True):
    """
     Standard formatting for one data sheet

    - Auto-adjust column widths (MIN_COLUMN_WIDTH..MAX_COLUMN_WIDTH)
    - Bold white-on-blue headers
    - Thin borders and alternating row shading
    - Freeze header row, auto-filter
    """
    for column in worksheet.columns:
        column_letter = get_column_letter(column[0].column)
        max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
        worksheet.column_dimensions[column_letter].width = max(
            Config.MIN_COLUMN_WIDTH, min(max_length + 2, Config.MAX_COLUMN_WIDTH)
        )

    light = Side(style='thin', color=ExcelTheme.BORDER_LIGHT)
    header_border = Border(left=light, right=light, top=light,
                           bottom=Side(style='medium', color=ExcelTheme.BORDER_DARK))
    cell_border = Border(left=light, right=light, top=light, bottom=light)

    for cell in worksheet[1]:
        cell.font = Font(bold=True, color=ExcelTheme.HEADER_TEXT)
        cell.fill = _solid(ExcelTheme.HEADER_BG)
        cell.border = header_border
        cell.alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)

    even_fill = _solid(ExcelTheme.ROW_EVEN)
    odd_fill = _solid(ExcelTheme.ROW_ODD)

    for row_idx in range(2, worksheet.max_row + 1):
        fill = even_fill if row_idx % 2 == 0 else odd_fill
        for col_idx in range(1, worksheet.max_column + 1):
            cell = worksheet.cell(row_idx, col_idx)
            cell.fill = fill
            cell.border = cell_border
            cell.alignment = Alignment(vertical='top')

    if freeze_panes and worksheet.max_row > 1:
        worksheet.freeze_panes = 'A2'

    if auto_filter and worksheet.max_row > 1:
        worksheet.auto_filter.ref = worksheet.dimensions

def highlight_rows(worksheet, column_name: str, color: str = ExcelTheme.ERROR_BG):
    """Fill every data row whose `column_name` cell is non-empty and non-zero"""
    target_col = None
    for col_idx, cell in enumerate(worksheet[1], 1):
        if cell.value == column_name:
            target_col = col_idx
            break

    if target_col is None:
        return

    fill = _solid(color)
    for row_idx in range(2, worksheet.max_row + 1):
        if worksheet.cell(row_idx, target_col).value not in (None, '', 0):
            for col_idx in range(1, worksheet.max_column + 1):
                worksheet.cell(row_idx, col_idx).fill = fill

def style_summary_sheet(worksheet):
    """Light-blue background on the Summary sheet's category column"""
    fill = _solid(ExcelTheme.SUMMARY_BG)
    for row_idx in range(2, worksheet.max_row + 1):
        cell = worksheet.cell(row_idx, 1)
        if cell.value:
            cell.fill = fill
            cell.font = Font(bold=True)
