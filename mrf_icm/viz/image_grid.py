"""
Utilidades de visualización para resultados MRF.

Proporciona funciones para mostrar imágenes de etiquetas en cuadrícula,
cortes de volúmenes etiquetados y la evolución de las pasadas ICM.
"""

from typing import List, Optional, Sequence, Tuple

import matplotlib
import matplotlib.pyplot as plt
import numpy as np

from ..icm.controller import MRFResult


def _colorize_labels(labels: np.ndarray, n_classes: int) -> np.ndarray:
    """
    Convierte un array de etiquetas 2D a imagen RGB con un color por clase.

    Args:
        labels: Array de etiquetas (H, W) con valores de 0 a n_classes-1
        n_classes: Número de clases

    Returns:
        colored_image: Imagen RGB (H, W, 3) con valores uint8 [0, 255]

    Raises:
        ValueError: Si labels no es un array 2D

    Example:
        >>> labels = np.array([[0, 0, 1], [1, 2, 2]])
        >>> _colorize_labels(labels, n_classes=3).shape
        (2, 3, 3)
    """
    if labels.ndim != 2:
        raise ValueError(f"Labels debe ser un array 2D (H, W), se recibió shape {labels.shape}")

    # 'tab10' hasta 10 clases, 'tab20' para más
    cmap = matplotlib.colormaps['tab10' if n_classes <= 10 else 'tab20']

    colored_image = np.zeros(labels.shape + (3,), dtype=np.uint8)
    for class_id in range(n_classes):
        color_rgba = cmap(class_id % cmap.N)
        colored_image[labels == class_id] = (np.array(color_rgba[:3]) * 255).astype(np.uint8)

    return colored_image


def plot_label_grid(
    label_images: List[np.ndarray],
    titles: List[str],
    n_classes: Optional[int] = None,
    figsize: Tuple[int, int] = (18, 6)
) -> plt.Figure:
    """
    Muestra varias imágenes de etiquetas 2D en una fila.

    Útil para comparar la clasificación inicial con la refinada por ICM.

    Args:
        label_images: Lista de arrays de etiquetas (H, W)
        titles: Un título por imagen
        n_classes: Número de clases. Si None, se infiere del máximo de etiquetas.
        figsize: Tamaño de la figura (ancho, alto) en pulgadas

    Returns:
        fig: Figura de matplotlib

    Raises:
        ValueError: Si la longitud de label_images y titles no coincide

    Example:
        >>> fig = plot_label_grid(
        ...     [initial_labels, result.labels],
        ...     ['Clasificador', f'ICM ({result.n_passes} pasadas)']
        ... )
    """
    if len(label_images) != len(titles):
        raise ValueError(
            f"El número de imágenes ({len(label_images)}) debe coincidir "
            f"con el número de títulos ({len(titles)})"
        )
    if n_classes is None:
        n_classes = int(max(np.max(img) for img in label_images)) + 1

    fig, axes = plt.subplots(1, len(label_images), figsize=figsize)
    axes = np.atleast_1d(axes)

    for ax, labels, title in zip(axes, label_images, titles):
        ax.imshow(_colorize_labels(np.asarray(labels), n_classes), interpolation='nearest')
        ax.axis('off')
        ax.set_title(title, fontsize=14, pad=10)

    plt.tight_layout()
    return fig


def plot_label_slices(
    labels: np.ndarray,
    axis: int = 0,
    n_slices: int = 3,
    slice_indices: Optional[Sequence[int]] = None,
    n_classes: Optional[int] = None,
    figsize: Optional[Tuple[int, int]] = None
) -> plt.Figure:
    """
    Muestra cortes de un volumen de etiquetas 3D.

    Args:
        labels: Volumen de etiquetas (D, H, W)
        axis: Eje a lo largo del cual se cortan los planos
        n_slices: Número de cortes equiespaciados (si slice_indices es None)
        slice_indices: Índices explícitos de los cortes
        n_classes: Número de clases. Si None, se infiere.
        figsize: Tamaño de la figura. Si None, 5 pulgadas por corte.

    Returns:
        fig: Figura de matplotlib

    Raises:
        ValueError: Si labels no es 3D
    """
    labels = np.asarray(labels)
    if labels.ndim != 3:
        raise ValueError(f"Se esperaba un volumen 3D, se recibió shape {labels.shape}")

    depth = labels.shape[axis]
    if slice_indices is None:
        slice_indices = np.linspace(0, depth - 1, num=min(n_slices, depth)).round().astype(int)
    slice_indices = [int(i) for i in slice_indices]
    if n_classes is None:
        n_classes = int(labels.max()) + 1
    if figsize is None:
        figsize = (5 * len(slice_indices), 5)

    fig, axes = plt.subplots(1, len(slice_indices), figsize=figsize)
    axes = np.atleast_1d(axes)

    for ax, index in zip(axes, slice_indices):
        plane = np.take(labels, index, axis=axis)
        ax.imshow(_colorize_labels(plane, n_classes), interpolation='nearest')
        ax.axis('off')
        ax.set_title(f'Corte {index} (eje {axis})', fontsize=12, pad=5)

    plt.tight_layout()
    return fig


def plot_pass_history(result: MRFResult, figsize: Tuple[int, int] = (12, 4)) -> plt.Figure:
    """
    Grafica elementos cambiados (y energía total, si se registró) por pasada.

    Args:
        result: Resultado de MRFImageFilter.run
        figsize: Tamaño de la figura

    Returns:
        fig: Figura con uno o dos paneles
    """
    passes = [r.pass_index for r in result.history]
    changed = [r.changed_count for r in result.history]
    energies = [r.energy for r in result.history]
    has_energy = bool(energies) and all(e is not None for e in energies)

    fig, axes = plt.subplots(1, 2 if has_energy else 1, figsize=figsize)
    axes = np.atleast_1d(axes)

    axes[0].plot(passes, changed, marker='o')
    axes[0].set_xlabel('Pasada')
    axes[0].set_ylabel('Elementos cambiados')
    axes[0].set_title(f'Cambios por pasada ({result.state.value})')
    axes[0].grid(True, alpha=0.3)

    if has_energy:
        x = passes
        y = energies
        if result.initial_energy is not None:
            x = [0] + passes
            y = [result.initial_energy] + energies
        axes[1].plot(x, y, marker='o', color='tab:red')
        axes[1].set_xlabel('Pasada')
        axes[1].set_ylabel('Energía total')
        axes[1].set_title('Energía MRF')
        axes[1].grid(True, alpha=0.3)

    plt.tight_layout()
    return fig
