"""
Basic training experiment for the ternary engine.

Trains a small network to reproduce the Kleene AND truth table over all nine
trit pairs, demonstrating:
- Pool-backed layer allocation
- Re-quantizing forward passes
- Confidence-space updates and value transitions
- Saving the trained layers
"""

import time
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np
from dotenv import load_dotenv

from trinet import EngineConfig, TernaryNetwork, Trit
from trinet.logic import trit_and
from trinet.utils import summarize_layer

load_dotenv(Path(__file__).parent.parent / '.env')


def kleene_and_dataset():
    """All nine input pairs with their Kleene AND as target."""
    trits = [Trit.FALSE, Trit.UNKNOWN, Trit.TRUE]
    inputs = np.array([[a, b] for a in trits for b in trits], dtype=np.int8)
    targets = np.array([[trit_and(a, b)] for a, b in inputs], dtype=np.float64)
    return inputs, targets


def run_basic_training(hidden: int = 8,
                       epochs: int = 500,
                       learning_rate: float = 0.05,
                       random_seed: int = 42,
                       save_path: str = None,
                       plot_path: str = None,
                       verbose: bool = True):
    """
    Run the basic training experiment.

    Args:
        hidden: Units in the hidden layer
        epochs: Number of train steps
        learning_rate: Confidence update step size
        random_seed: Seed for weight initialization
        save_path: Optional path for the trained layers
        plot_path: Optional path for the training dashboard
        verbose: Whether to print progress

    Returns:
        dict: Experiment results
    """
    config = EngineConfig.from_env()
    config.seed = random_seed

    if verbose:
        print("=" * 70)
        print("TERNARY ENGINE - Basic Training (Kleene AND)")
        print("=" * 70)
        print(f"Configuration:")
        print(f"  Hidden units: {hidden}")
        print(f"  Epochs: {epochs}")
        print(f"  Learning rate: {learning_rate}")
        print(f"  Loss: {config.update.loss}")
        print(f"  Backend: {config.backend}")
        print(f"  Thresholds: [{config.activation.theta_low}, {config.activation.theta_high}]")
        print(f"  Random seed: {random_seed}")
        print("=" * 70)

    inputs, targets = kleene_and_dataset()
    start_time = time.time()

    with TernaryNetwork(config) as network:
        network.add_layer(hidden, input_size=2)
        network.add_layer(1)

        if verbose:
            print(f"\n[1/3] Initialized {network}")
            print(f"  Pool in use: {network.pool.stats().bytes_in_use} bytes")
            print(f"\n[2/3] Training ({epochs} epochs)...")

        results = network.run_training(inputs, targets, epochs=epochs,
                                       learning_rate=learning_rate,
                                       verbose=verbose, log_interval=max(epochs // 10, 1))

        values, confidence = network.predict(inputs)
        accuracy = float(np.mean(values.reshape(-1) == targets.reshape(-1)))

        if verbose:
            print(f"\n[3/3] Evaluation")
            for (a, b), v, c in zip(inputs, values.reshape(-1), confidence.reshape(-1)):
                print(f"  AND({Trit(int(a)).name:7s}, {Trit(int(b)).name:7s}) -> "
                      f"{Trit(int(v)).name:7s} (confidence {c:.3f})")
            print(f"  Accuracy: {accuracy:.2%}")
            for i, layer in enumerate(network.layers):
                summary = summarize_layer(layer)
                w = summary['weight']
                print(f"  Layer {i} ({summary['input_size']}->{summary['output_size']}): "
                      f"T={w['frac_true']:.2f} F={w['frac_false']:.2f} "
                      f"U={w['frac_unknown']:.2f} mean conf={w['mean_confidence']:.3f}")

        if save_path:
            network.save(save_path)
            if verbose:
                print(f"  ✓ Saved layers to {save_path}")

        if plot_path:
            from visualization import plot_training_dashboard
            plot_training_dashboard(results, save_path=plot_path)
            if verbose:
                print(f"  ✓ Saved dashboard to {plot_path}")

        final_state = network.get_state()

    total_time = time.time() - start_time

    if verbose:
        print("\n" + "=" * 70)
        print(f"Total time: {total_time:.2f}s")
        print(f"Initial loss: {results[0]['loss']:.6f}")
        print(f"Final loss: {results[-1]['loss']:.6f}")
        print(f"Total value transitions: {sum(r['flips'] + r['promotions'] for r in results)}")
        print("=" * 70)

    return {
        'results': results,
        'accuracy': accuracy,
        'final_state': final_state,
        'total_time': total_time,
    }


def main():
    """Main entry point for basic training."""
    import argparse

    parser = argparse.ArgumentParser(
        description='Train a ternary network on the Kleene AND truth table'
    )
    parser.add_argument('--hidden', type=int, default=8,
                        help='Hidden units (default: 8)')
    parser.add_argument('--epochs', '-e', type=int, default=500,
                        help='Number of epochs (default: 500)')
    parser.add_argument('--lr', type=float, default=0.05,
                        help='Learning rate (default: 0.05)')
    parser.add_argument('--seed', type=int, default=42,
                        help='Random seed (default: 42)')
    parser.add_argument('--save', type=str, default=None,
                        help='Save trained layers to this path')
    parser.add_argument('--plot', type=str, default=None,
                        help='Save training dashboard to this path')
    parser.add_argument('--quiet', '-q', action='store_true',
                        help='Suppress output')

    args = parser.parse_args()

    return run_basic_training(
        hidden=args.hidden,
        epochs=args.epochs,
        learning_rate=args.lr,
        random_seed=args.seed,
        save_path=args.save,
        plot_path=args.plot,
        verbose=not args.quiet
    )


if __name__ == '__main__':
    main()
