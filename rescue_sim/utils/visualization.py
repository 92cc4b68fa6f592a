"""
Visualization utilities for the rescue therapy simulation.
"""

import matplotlib.pyplot as plt
import seaborn as sns
import pandas as pd
from typing import Optional, Sequence, Tuple, Dict
from pathlib import Path

from ..config.settings import FIGURES_DIR, AnalysisConfig


class TrajectoryVisualizer:
    """
    Plots of simulated scores and model-estimated trajectories.

    The main figure has one facet per model variant, time on the x-axis,
    the estimated mean score on the y-axis and one coloured line per group.
    """

    def __init__(self, save_dir: Optional[Path] = None, figsize: Tuple[float, float] = (12, 4.5),
                 palette: Optional[Dict[str, str]] = None):
        """
        Initialize the visualizer.

        Args:
            save_dir: Directory to save figures. If None, uses default from config.
            figsize: Default figure size for plots.
            palette: Group label -> colour. If None, uses the configured palette.
        """
        self.save_dir = Path(save_dir) if save_dir is not None else FIGURES_DIR
        self.figsize = figsize
        self.palette = palette or AnalysisConfig.GROUP_PALETTE

    @property
    def hue_order(self):
        return list(self.palette.keys())

    def trajectory_facets(self, trajectories: pd.DataFrame,
                          model_order: Sequence[str] = AnalysisConfig.MODEL_VARIANTS,
                          show_ci: bool = False,
                          title: Optional[str] = None,
                          save_name: Optional[str] = None) -> plt.Figure:
        """
        Faceted line-and-point chart of estimated trajectories.

        Args:
            trajectories: DataFrame with model, group, time, estimate (and lower/upper)
            model_order: Facet order; models absent from the data are skipped
            show_ci: Whether to shade the confidence band
            title: Figure title
            save_name: Filename to save the plot

        Returns:
            matplotlib Figure object
        """
        models = [m for m in model_order if m in set(trajectories['model'])]
        if not models:
            raise ValueError("No trajectories to plot")

        fig, axes = plt.subplots(1, len(models), figsize=self.figsize, sharey=True, squeeze=False)
        axes = axes[0]

        for ax, model in zip(axes, models):
            subset = trajectories[trajectories['model'] == model]

            sns.lineplot(data=subset, x='time', y='estimate', hue='group',
                         hue_order=self.hue_order, palette=self.palette,
                         marker='o', ax=ax, legend='auto' if ax is axes[0] else False)

            if show_ci and {'lower', 'upper'}.issubset(subset.columns):
                for group, rows in subset.groupby('group'):
                    rows = rows.sort_values('time')
                    ax.fill_between(rows['time'], rows['lower'], rows['upper'],
                                    color=self.palette.get(group), alpha=0.15)

            ax.set_title(model, fontsize=12, fontweight='bold')
            ax.set_xlabel('Time (months)', fontsize=11)
            ax.set_xticks(sorted(subset['time'].unique()))
            ax.grid(alpha=0.3)

        axes[0].set_ylabel('Estimated MG-ADL', fontsize=11)

        # Single legend below the facets
        handles, labels = axes[0].get_legend_handles_labels()
        if axes[0].get_legend() is not None:
            axes[0].get_legend().remove()
        fig.legend(handles, labels, loc='lower center', ncol=len(labels), frameon=False,
                   bbox_to_anchor=(0.5, -0.02))

        if title:
            fig.suptitle(title, fontsize=14, fontweight='bold')

        plt.tight_layout(rect=(0, 0.08, 1, 1))

        if save_name:
            self._save_figure(fig, save_name)

        return fig

    def individual_trajectories(self, dataset: pd.DataFrame, value_col: str = 'observed_response',
                                title: Optional[str] = None,
                                save_name: Optional[str] = None) -> plt.Figure:
        """
        Spaghetti plot of individual scores, rescued subjects dashed.

        Args:
            dataset: Simulated dataset
            value_col: Score column to plot
            title: Plot title
            save_name: Filename to save the plot

        Returns:
            matplotlib Figure object
        """
        fig, ax = plt.subplots(figsize=(self.figsize[0] / 2, self.figsize[1]))

        for subject_id, rows in dataset.groupby('subject_id', sort=False):
            label = AnalysisConfig.GROUP_LABELS.get(int(rows['treatment'].iloc[0]))
            censored = bool(rows['censored'].iloc[0]) if 'censored' in rows.columns else False
            ax.plot(rows['time'], rows[value_col], color=self.palette.get(label),
                    linestyle='--' if censored else '-', alpha=0.35, linewidth=0.8)

        means = dataset.groupby(['treatment', 'time'])[value_col].mean().reset_index()
        means['group'] = means['treatment'].map(AnalysisConfig.GROUP_LABELS)
        sns.lineplot(data=means, x='time', y=value_col, hue='group', hue_order=self.hue_order,
                     palette=self.palette, marker='o', linewidth=2.5, ax=ax)

        ax.set_title(title or f'Individual {value_col.replace("_", " ")}', fontsize=14, fontweight='bold')
        ax.set_xlabel('Time (months)', fontsize=12)
        ax.set_ylabel('MG-ADL', fontsize=12)
        ax.legend(loc='upper center', bbox_to_anchor=(0.5, -0.15), ncol=2, frameon=False)

        plt.tight_layout()

        if save_name:
            self._save_figure(fig, save_name)

        return fig

    def _save_figure(self, fig: plt.Figure, filename: str, dpi: int = 300) -> Path:
        """
        Save figure to file.

        Args:
            fig: matplotlib Figure object
            filename: Name of the file (without extension)
            dpi: Resolution for saved figure
        """
        self.save_dir.mkdir(parents=True, exist_ok=True)

        if not filename.endswith(('.png', '.pdf', '.svg', '.jpg', '.jpeg')):
            filename += '.png'

        filepath = self.save_dir / filename
        fig.savefig(filepath, dpi=dpi, bbox_inches='tight')
        print(f"Figure saved: {filepath}")
        return filepath

    @staticmethod
    def show_all():
        """Show all open figures."""
        plt.show()

    @staticmethod
    def close_all():
        """Close all figures to free memory."""
        plt.close('all')
