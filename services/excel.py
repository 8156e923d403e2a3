import os
import logging
import tempfile
from pathlib import Path

import openpyxl
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter


# Configure logging
logger = logging.getLogger(__name__)

# Excel's LIGHT_CORNFLOWER_BLUE indexed colour
HEADER_FILL = PatternFill(fill_type="solid", start_color="FFCCCCFF", end_color="FFCCCCFF")
HEADER_FONT = Font(bold=True)


class OpenPyXLFileHandler:
    """
    A file handler class that abstracts the workbook operations the order
    records service needs: open-or-create, replace and reorder sheets,
    style header cells, and write the result to disk in one step.
    """

    def __init__(self, workbook=None):
        """
        Initialize the file handler with an existing workbook.
        """
        self.workbook = workbook

    @classmethod
    def from_file(cls, file_path, data_only=True):
        """
        Initialize the file handler with an Excel file from disk.

        Args:
            file_path (str): Path to the Excel file.
            data_only (bool): Whether to read the values instead of formulas.

        Returns:
            OpenPyXLFileHandler: An initialized file handler.
        """
        logger.debug(f"File path we're loading the excel from is {file_path}")
        workbook = openpyxl.load_workbook(file_path, data_only=data_only)
        return cls(workbook=workbook)

    @classmethod
    def new(cls):
        """
        Initialize the file handler with an empty workbook (no sheets at all;
        callers must create at least one before saving).
        """
        workbook = openpyxl.Workbook()
        workbook.remove(workbook.active)
        return cls(workbook=workbook)

    def get_sheet_names(self):
        """
        Get the names of all sheets in the workbook.

        :return: List of sheet names
        :rtype: list[str]
        """
        if self.workbook is None:
            raise ValueError("Workbook is not loaded.")
        return self.workbook.sheetnames

    def get_sheet(self, sheet_name):
        """
        Get a specific sheet by name, or None if the workbook has no such sheet.
        """
        if sheet_name not in self.get_sheet_names():
            return None
        return self.workbook[sheet_name]

    def recreate_sheet(self, sheet_name):
        """
        Drop the named sheet (if present) and create an empty one in its place.
        New sheets are appended at the end.

        :return: The new, empty sheet
        :rtype: openpyxl.worksheet.worksheet.Worksheet
        """
        names = self.get_sheet_names()
        index = None
        if sheet_name in names:
            index = names.index(sheet_name)
            self.workbook.remove(self.workbook[sheet_name])
        return self.workbook.create_sheet(title=sheet_name, index=index)

    def move_sheet(self, sheet_name, target_index):
        """
        Move a sheet to `target_index` (clamped to the last position).
        Does nothing when the sheet does not exist.
        """
        names = self.get_sheet_names()
        if sheet_name not in names:
            return
        target_index = min(target_index, len(names) - 1)
        offset = target_index - names.index(sheet_name)
        if offset:
            self.workbook.move_sheet(sheet_name, offset=offset)

    @staticmethod
    def set_header_cell(sheet, row, column, value):
        """Write a header label with the bold, filled header style. Row/column are 1-based."""
        cell = sheet.cell(row=row, column=column, value=value)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        return cell

    @staticmethod
    def set_text_cell(sheet, row, column, value):
        """
        Write `value` as a literal string. openpyxl would otherwise store text
        starting with '=' as a formula, which reads back as None with data_only.
        """
        cell = sheet.cell(row=row, column=column, value=value)
        if isinstance(value, str):
            cell.data_type = "s"
        return cell

    @staticmethod
    def autosize_columns(sheet, start_column, count=5):
        """
        Approximate Excel's auto-fit: width from the longest text in each column.
        `start_column` is 1-based.
        """
        for column in range(start_column, start_column + count):
            longest = 0
            for (value,) in sheet.iter_rows(min_col=column, max_col=column, values_only=True):
                if value is not None:
                    longest = max(longest, len(str(value)))
            if longest:
                sheet.column_dimensions[get_column_letter(column)].width = longest + 2

    def save_workbook(self, save_path):
        """
        Save the current workbook to the specified file path.

        The workbook is written to a temporary file beside the target and then
        renamed over it, so readers only ever see the old file or the new one.

        :param save_path: The file path where the workbook should be saved.
        :type save_path: str
        """
        if self.workbook is None:
            raise ValueError("No workbook is loaded or created to save.")

        target = Path(save_path)
        fd, tmp_name = tempfile.mkstemp(prefix=target.stem + "_", suffix=".tmp", dir=str(target.parent))
        os.close(fd)
        tmp_path = Path(tmp_name)
        try:
            self.workbook.save(tmp_path)
            os.replace(tmp_path, target)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        logger.info(f"Workbook saved to {save_path}")
