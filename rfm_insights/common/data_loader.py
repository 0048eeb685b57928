"""
Data Loading Module
===================

Reads retail transaction logs into string-typed DataFrames. No type
inference happens here: every cell stays the raw text from the file so the
normalizer can apply its own parsing rules.

Usage:
    from rfm_insights.common import DataLoader

    loader = DataLoader()
    df = loader.load_csv("data/sample_transactions.csv")
    df = loader.read_csv_text(uploaded_bytes)
"""

import csv
from io import StringIO
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd
from loguru import logger


class DataLoader:
    """
    Loader for CSV transaction logs.

    Attributes:
        supported_formats (list): List of supported file suffixes

    Example:
        >>> loader = DataLoader()
        >>> df = loader.load_csv("transactions.csv")
        >>> print(f"Loaded {len(df)} records")
    """

    def __init__(self, encoding: str = 'utf-8'):
        """
        Initialize DataLoader.

        Args:
            encoding: Text encoding used for bytes and files
        """
        self.encoding = encoding
        self.supported_formats = ['.csv', '.txt']
        logger.info("DataLoader initialized")

    def load_csv(self, filepath: Union[str, Path]) -> pd.DataFrame:
        """
        Load a CSV file with every column kept as raw text.

        Args:
            filepath: Path to CSV file

        Returns:
            DataFrame of strings, one row per non-empty line

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is unsupported
        """
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"File not found: {filepath}")

        if filepath.suffix.lower() not in self.supported_formats:
            raise ValueError(f"Unsupported format: {filepath.suffix}")

        logger.info(f"Loading data from {filepath}")
        return self.read_csv_text(filepath.read_bytes())

    def read_csv_text(self, content: Union[str, bytes]) -> pd.DataFrame:
        """
        Parse CSV content that has a header row.

        Empty lines are skipped, short rows are padded with empty strings
        and fields beyond the header width are dropped. Values such as
        "NA" or "null" are kept literally. When the quoting is unbalanced
        the content is re-read with quote characters taken literally, so
        one bad row never fails the whole file.

        Args:
            content: CSV text, or bytes in the loader's encoding

        Returns:
            DataFrame of strings (no columns when the content is empty)
        """
        if isinstance(content, bytes):
            content = content.decode(self.encoding)

        try:
            df = self._parse(content, quoting=csv.QUOTE_MINIMAL)
        except pd.errors.EmptyDataError:
            logger.warning("CSV content is empty")
            return pd.DataFrame()
        except pd.errors.ParserError as e:
            logger.warning(f"Malformed CSV quoting ({e}); reading quotes literally")
            df = self._parse(content, quoting=csv.QUOTE_NONE)

        df = df.fillna('')
        logger.info(f"Loaded {len(df)} records with {len(df.columns)} columns")
        return df

    @staticmethod
    def _parse(content: str, quoting: int) -> pd.DataFrame:
        options = dict(
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            # never promote a leading column to the index on ragged rows
            index_col=False,
            engine='python',
            quoting=quoting,
        )
        width = len(pd.read_csv(StringIO(content), nrows=0, **options).columns)
        return pd.read_csv(
            StringIO(content),
            on_bad_lines=lambda fields: fields[:width],
            **options
        )

    @staticmethod
    def get_headers(df: pd.DataFrame) -> List[str]:
        """Return the header names in file order."""
        return [str(col) for col in df.columns]

    def get_data_summary(self, df: pd.DataFrame) -> Dict[str, Any]:
        """
        Generate a short summary of the loaded data.

        Args:
            df: Input DataFrame

        Returns:
            Dictionary with row/column counts and empty-cell counts
        """
        return {
            'n_rows': len(df),
            'n_columns': len(df.columns),
            'columns': self.get_headers(df),
            'empty_cells': {col: int((df[col] == '').sum()) for col in df.columns},
        }
