import math
import numpy as np
import matplotlib.pyplot as plt

from artct import ReconContext, art, forward_project, shepp_logan_2d
from artct.logging_utils import setup_logging


def main():
    setup_logging("INFO")

    Nx, Ny = 128, 128
    phantom = shepp_logan_2d(Nx, Ny)

    num_views = 180
    angles = np.linspace(0, math.pi, num_views, endpoint=False)
    num_detectors = 160
    center = (num_detectors - 1) * 0.5

    # Simulate the sinogram with the same ray model ART inverts
    sinogram = forward_project(phantom, angles, center=center, ndet=num_detectors)

    backend = "cuda" if _cuda_available() else "cpu"
    context = ReconContext()
    recon = None
    residuals = []
    for _ in range(10):
        recon = art(sinogram[np.newaxis], angles, center=center, ngridx=Nx, ngridy=Ny,
                    num_iter=1, backend=backend, init_recon=recon, context=context)
        predicted = forward_project(recon[0], angles, center=center, ndet=num_detectors)
        residuals.append(float(np.sum((predicted - sinogram) ** 2)))
        print(f"Sweep {len(residuals)}, residual: {residuals[-1]:.4e}")

    plt.figure()
    plt.semilogy(np.arange(1, len(residuals) + 1), residuals)
    plt.title("Projection Residual")
    plt.xlabel("Sweep")
    plt.ylabel("Sum of squared residuals")
    plt.show()

    plt.figure(figsize=(15, 5))
    plt.subplot(1, 3, 1)
    plt.imshow(phantom.T, cmap="gray", origin="lower")
    plt.title("Original Phantom")
    plt.axis("off")

    plt.subplot(1, 3, 2)
    plt.imshow(sinogram, cmap="gray", aspect="auto")
    plt.title("Sinogram")
    plt.axis("off")

    plt.subplot(1, 3, 3)
    plt.imshow(recon[0].T, cmap="gray", origin="lower")
    plt.title(f"ART ({backend}, {len(residuals)} sweeps)")
    plt.axis("off")
    plt.show()


def _cuda_available():
    from numba import cuda
    return cuda.is_available()


if __name__ == "__main__":
    main()
