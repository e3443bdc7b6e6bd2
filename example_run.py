#!/usr/bin/env python3
"""
Example script demonstrating how to run the reef cover preparation workflow.

This script processes one survey export against a label map and produces:
1. Transect-level counts for every functional group
2. The model-ready hard coral table
3. A table of classification codes missing from the label map

Output is saved as both a pickle file (dictionary) and individual CSVs.
"""

import pickle
import sys
from pathlib import Path

from reef_cover import prepare_reef_cover_full


def process_survey(
    survey_path: str,
    label_map_path: str,
    output_dir: str = "./output",
    label_weight_col: str = None
) -> dict:
    """
    Process a single survey export and save results.

    Parameters
    ----------
    survey_path : str
        Path to the point-level survey export CSV
    label_map_path : str
        Path to the label map CSV
    output_dir : str
        Directory to save output files
    label_weight_col : str, optional
        Weight column in the label map (e.g. 'TAU') for the weighted tally

    Returns
    -------
    dict
        Dictionary containing all output tables and metadata
    """
    Path(output_dir).mkdir(exist_ok=True)

    csvs_output_dir = Path(output_dir) / "csvs"
    csvs_output_dir.mkdir(parents=True, exist_ok=True)

    name = Path(survey_path).stem

    print(f"\n{'='*60}")
    print(f"Processing survey: {name}")
    print(f"{'='*60}\n")

    output = prepare_reef_cover_full(
        survey_path=survey_path,
        label_map_path=label_map_path,
        label_weight_col=label_weight_col,
        verbose=True
    )

    pkl_file = Path(output_dir) / f"{name}.pkl"
    with open(pkl_file, 'wb') as f:
        pickle.dump(output, f)
    print(f"\nPickle file saved: {pkl_file}")

    csv_files = {
        'transect_counts': f"{name}_transect_counts.csv",
        'model_data': f"{name}_model_data.csv",
        'unmapped_codes': f"{name}_unmapped_codes.csv",
    }
    if 'weighted_transect_counts' in output:
        csv_files['weighted_transect_counts'] = f"{name}_weighted_transect_counts.csv"

    for key, filename in csv_files.items():
        filepath = csvs_output_dir / filename
        output[key].to_csv(filepath, index=False)
        print(f"CSV saved: {filepath}")

    metadata = output['metadata']
    print(f"\n{'='*60}")
    print("Summary:")
    print(f"{'='*60}")
    print(f"  Points kept: {metadata['n_points']} ({metadata['n_points_removed']} removed)")
    print(f"  Transects: {metadata['n_transects']}")
    print(f"  Unmapped points: {metadata['n_unmapped_points']}")
    print(f"  Incomplete images: {metadata['n_incomplete_contexts']}")
    print(f"  Model rows: {metadata['n_model_rows']}")

    if not output['model_data'].empty:
        print("\nSample model rows:")
        print(output['model_data'].head(3).to_string())

    return output


def main():
    """Main entry point."""
    if len(sys.argv) < 3:
        print("Usage: python example_run.py SURVEY_CSV LABEL_MAP_CSV [WEIGHT_COLUMN]")
        sys.exit(1)

    weight_col = sys.argv[3] if len(sys.argv) > 3 else None
    process_survey(sys.argv[1], sys.argv[2], label_weight_col=weight_col)

    print(f"\n{'='*60}")
    print("Done!")
    print(f"{'='*60}")


if __name__ == "__main__":
    main()
